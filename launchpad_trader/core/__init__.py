"""
Core configuration.
"""
from .config import (
    TraderConfig, Endpoints, SwapConfig, RetryConfig, LaunchpadConfig,
    DEFAULT_CONFIG, FAST_EXIT_CONFIG, load_keypair,
    RAYDIUM_LAUNCHPAD_PROGRAM, WSOL_MINT, DEFAULT_MINT,
    LAMPORTS_PER_SOL, TOKEN_DECIMALS,
)

__all__ = [
    'TraderConfig', 'Endpoints', 'SwapConfig', 'RetryConfig', 'LaunchpadConfig',
    'DEFAULT_CONFIG', 'FAST_EXIT_CONFIG', 'load_keypair',
    'RAYDIUM_LAUNCHPAD_PROGRAM', 'WSOL_MINT', 'DEFAULT_MINT',
    'LAMPORTS_PER_SOL', 'TOKEN_DECIMALS',
]
