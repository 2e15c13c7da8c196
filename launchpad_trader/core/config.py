"""
Configuration - All execution parameters in one place.

Usage:
    from launchpad_trader.core import TraderConfig, SwapConfig

    # Defaults (mainnet endpoints, 10% slippage, 3 primary attempts)
    config = TraderConfig()
    print(config.swap.slippage_bps)

    # Environment overrides (LAUNCHPAD_RPC_URL, LAUNCHPAD_SLIPPAGE_BPS, ...)
    config = TraderConfig.from_env()
"""
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..errors import ConfigError


# Raydium Launchpad (LaunchLab) program constants
RAYDIUM_LAUNCHPAD_PROGRAM = "LanMV9sAd7wArD4vJFi2qDdfnVhFxYSUg6eADduJ3uj"
LAUNCHPAD_GLOBAL_CONFIG = "6s1xP3hpbAfFoNtUNF8mfHsjr2Bd97JxFJRWLbL6aHuX"
LAUNCHPAD_PLATFORM_CONFIG = "FfYek5vEz23cMkWsdJwG2oa6EphsvXSHrGpdALN4g6W1"

# System mints
WSOL_MINT = "So11111111111111111111111111111111111111112"
DEFAULT_MINT = "2ivzYvjnKqA4X3dVvPKr7bctGpbxwrXbbxm44TJCpump"

# 0slot relay tip account
ZEROSLOT_TIP_ACCOUNT = "6fQaVhYZA4w3MBSXjJ81Vf6W1EDYeUPXpgVQ6UQyU1Av"

LAMPORTS_PER_SOL = 1_000_000_000
TOKEN_DECIMALS = 6


@dataclass
class Endpoints:
    """Network endpoints shared by every sell task."""

    rpc_url: str = "https://api.mainnet-beta.solana.com"
    ws_url: str = "wss://api.mainnet-beta.solana.com"
    relay_url: str = "https://ny.0slot.trade"
    jupiter_url: str = "https://quote-api.jup.ag/v6"
    relay_api_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rpc_url': self.rpc_url,
            'ws_url': self.ws_url,
            'relay_url': self.relay_url,
            'jupiter_url': self.jupiter_url,
            'relay_api_key': "***" if self.relay_api_key else None,
        }


@dataclass
class SwapConfig:
    """Per-sell parameters (slippage, size, fees)."""

    slippage_bps: int = 1000                    # 10% - launchpad curves move fast
    in_amount_fraction: float = 1.0             # 1.0 = sell the whole position
    priority_fee_microlamports: int = 100_000   # compute unit price
    compute_unit_limit: int = 150_000
    relay_tip_lamports: int = 1_000_000         # 0.001 SOL relay tip
    share_fee_rate: int = 0

    def validate(self) -> 'SwapConfig':
        if not 0 <= self.slippage_bps <= 10_000:
            raise ConfigError(f"slippage_bps out of range: {self.slippage_bps}")
        if not 0 < self.in_amount_fraction <= 1.0:
            raise ConfigError(f"in_amount_fraction must be in (0, 1]: {self.in_amount_fraction}")
        if self.priority_fee_microlamports < 0 or self.relay_tip_lamports < 0:
            raise ConfigError("fees must be non-negative")
        if self.compute_unit_limit <= 0:
            raise ConfigError(f"compute_unit_limit must be positive: {self.compute_unit_limit}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'slippage_bps': self.slippage_bps,
            'in_amount_fraction': self.in_amount_fraction,
            'priority_fee_microlamports': self.priority_fee_microlamports,
            'compute_unit_limit': self.compute_unit_limit,
            'relay_tip_lamports': self.relay_tip_lamports,
            'share_fee_rate': self.share_fee_rate,
        }


@dataclass
class RetryConfig:
    """Retry budget for the resilient sell executor."""

    max_primary_attempts: int = 3
    retry_delay: float = 2.0        # seconds between primary attempts
    verify_attempts: int = 3        # status queries per submitted signature
    verify_backoff: float = 2.0     # seconds between status queries

    def validate(self) -> 'RetryConfig':
        if self.max_primary_attempts < 1 or self.verify_attempts < 1:
            raise ConfigError("attempt budgets must be at least 1")
        if self.retry_delay < 0 or self.verify_backoff < 0:
            raise ConfigError("delays must be non-negative")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_primary_attempts': self.max_primary_attempts,
            'retry_delay': self.retry_delay,
            'verify_attempts': self.verify_attempts,
            'verify_backoff': self.verify_backoff,
        }


@dataclass
class LaunchpadConfig:
    """On-chain addresses of the primary venue."""

    program_id: str = RAYDIUM_LAUNCHPAD_PROGRAM
    global_config: str = LAUNCHPAD_GLOBAL_CONFIG
    platform_config: str = LAUNCHPAD_PLATFORM_CONFIG
    quote_mint: str = WSOL_MINT
    default_mint: str = DEFAULT_MINT

    def to_dict(self) -> Dict[str, Any]:
        return {
            'program_id': self.program_id,
            'global_config': self.global_config,
            'platform_config': self.platform_config,
            'quote_mint': self.quote_mint,
            'default_mint': self.default_mint,
        }


@dataclass
class TraderConfig:
    """Master configuration."""

    endpoints: Endpoints = field(default_factory=Endpoints)
    swap: SwapConfig = field(default_factory=SwapConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    launchpad: LaunchpadConfig = field(default_factory=LaunchpadConfig)
    keypair_path: str = "~/.config/solana/id.json"
    relay_tip_account: str = ZEROSLOT_TIP_ACCOUNT
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        prefix: str = "LAUNCHPAD_",
        environ: Optional[Mapping[str, str]] = None,
    ) -> 'TraderConfig':
        """Create config with overrides from environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(prefix + name)
            return value if value else None

        config = cls()
        endpoints = config.endpoints
        endpoints.rpc_url = get("RPC_URL") or endpoints.rpc_url
        endpoints.ws_url = get("WS_URL") or endpoints.ws_url
        endpoints.relay_url = get("RELAY_URL") or endpoints.relay_url
        endpoints.jupiter_url = get("JUPITER_URL") or endpoints.jupiter_url
        endpoints.relay_api_key = get("RELAY_API_KEY") or endpoints.relay_api_key
        config.keypair_path = get("KEYPAIR_PATH") or config.keypair_path
        config.log_level = (get("LOG_LEVEL") or config.log_level).upper()

        try:
            if get("SLIPPAGE_BPS"):
                config.swap.slippage_bps = int(get("SLIPPAGE_BPS"))
            if get("PRIORITY_FEE"):
                config.swap.priority_fee_microlamports = int(get("PRIORITY_FEE"))
            if get("MAX_RETRIES"):
                config.retry.max_primary_attempts = int(get("MAX_RETRIES"))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric environment override: {e}") from e

        return config.validate()

    def validate(self) -> 'TraderConfig':
        self.swap.validate()
        self.retry.validate()
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'endpoints': self.endpoints.to_dict(),
            'swap': self.swap.to_dict(),
            'retry': self.retry.to_dict(),
            'launchpad': self.launchpad.to_dict(),
            'keypair_path': self.keypair_path,
            'relay_tip_account': self.relay_tip_account,
            'log_level': self.log_level,
        }


def load_keypair(path: str):
    """Load a Solana CLI keypair file (JSON array of 64 bytes)."""
    from solders.keypair import Keypair

    keypair_path = Path(path).expanduser()
    try:
        with open(keypair_path) as f:
            secret = json.load(f)
        return Keypair.from_bytes(bytes(secret))
    except Exception as e:
        raise ConfigError(f"Cannot load keypair from {keypair_path}: {e}") from e


# Default configuration
DEFAULT_CONFIG = TraderConfig()


# Fast exit: wider slippage, higher fee, shorter waits
FAST_EXIT_CONFIG = TraderConfig(
    swap=SwapConfig(
        slippage_bps=2500,
        priority_fee_microlamports=500_000,
        relay_tip_lamports=2_000_000,
    ),
    retry=RetryConfig(
        max_primary_attempts=3,
        retry_delay=0.5,
        verify_attempts=4,
        verify_backoff=1.0,
    ),
)
