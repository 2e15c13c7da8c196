"""
Solana Transaction Builder for Raydium Launchpad
================================================

Instruction building for launchpad bonding curve sells.

Derived from the launchpad program's Anchor IDL:
- Program: LanMV9sAd7wArD4vJFi2qDdfnVhFxYSUg6eADduJ3uj
- sell_exact_in(amount_in: u64, minimum_amount_out: u64, share_fee_rate: u64)
- Constant product curve over virtual + real reserves

Account layout for SELL_EXACT_IN (15 accounts):
    0: payer (signer)
    1: authority (vault authority PDA)
    2: globalConfig (read)
    3: platformConfig (read)
    4: poolState (write)
    5: userBaseToken (write)
    6: userQuoteToken (write)
    7: baseVault (write)
    8: quoteVault (write)
    9: baseTokenMint (read)
    10: quoteTokenMint (read)
    11: baseTokenProgram (read)
    12: quoteTokenProgram (read)
    13: eventAuthority (read)
    14: program (read)
"""

import hashlib
import struct
from typing import List, Optional, Tuple

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    close_account,
    create_idempotent_associated_token_account,
    get_associated_token_address,
)
from spl.token.models import CloseAccountParams

from ..core.config import LaunchpadConfig


# Discriminator (first 8 bytes of sha256("global:<instruction>"))
SELL_EXACT_IN_DISCRIMINATOR = hashlib.sha256(b"global:sell_exact_in").digest()[:8]

# PDA seeds
POOL_SEED = b"pool"
POOL_VAULT_SEED = b"pool_vault"
VAULT_AUTH_SEED = b"vault_auth_seed"
EVENT_AUTHORITY_SEED = b"__event_authority"

# Trade fee charged by the curve, parts per million
LAUNCHPAD_FEE_RATE = 2_500
FEE_RATE_DENOMINATOR = 1_000_000


def derive_pool_state(base_mint: Pubkey, quote_mint: Pubkey, program_id: Pubkey) -> Pubkey:
    """Pool state PDA for a base/quote mint pair"""
    pda, _ = Pubkey.find_program_address([POOL_SEED, bytes(base_mint), bytes(quote_mint)], program_id)
    return pda


def derive_pool_vault(pool_state: Pubkey, mint: Pubkey, program_id: Pubkey) -> Pubkey:
    """Token vault PDA owned by a pool"""
    pda, _ = Pubkey.find_program_address([POOL_VAULT_SEED, bytes(pool_state), bytes(mint)], program_id)
    return pda


def derive_vault_authority(program_id: Pubkey) -> Pubkey:
    pda, _ = Pubkey.find_program_address([VAULT_AUTH_SEED], program_id)
    return pda


def derive_event_authority(program_id: Pubkey) -> Pubkey:
    pda, _ = Pubkey.find_program_address([EVENT_AUTHORITY_SEED], program_id)
    return pda


class LaunchpadCurve:
    """
    Launchpad curve math (constant product, k = x * y).

    Reserves are the effective ones reported by the trade event:
    quote = virtual_quote + real_quote, base = virtual_base - real_base.
    """

    @staticmethod
    def get_sell_quote(amount_in: int, quote_reserve: int, base_reserve: int) -> int:
        """Lamports received for selling amount_in base units, after fee"""
        if amount_in <= 0 or quote_reserve <= 0 or base_reserve <= 0:
            return 0

        k = quote_reserve * base_reserve
        new_base_reserve = base_reserve + amount_in
        new_quote_reserve = -(-k // new_base_reserve)     # ceil keeps rounding in the pool's favour
        quote_out = quote_reserve - new_quote_reserve

        fee = quote_out * LAUNCHPAD_FEE_RATE // FEE_RATE_DENOMINATOR
        return max(quote_out - fee, 0)

    @staticmethod
    def apply_slippage(expected_out: int, slippage_bps: int) -> int:
        """Minimum acceptable output for a slippage tolerance in bps"""
        return expected_out * (10_000 - slippage_bps) // 10_000


class LaunchpadInstructionBuilder:
    """Build launchpad sell instructions."""

    def __init__(self, config: Optional[LaunchpadConfig] = None):
        config = config or LaunchpadConfig()
        self.program_id = Pubkey.from_string(config.program_id)
        self.global_config = Pubkey.from_string(config.global_config)
        self.platform_config = Pubkey.from_string(config.platform_config)
        self.quote_mint = Pubkey.from_string(config.quote_mint)

    def build_sell_instruction(
        self,
        user: Pubkey,
        base_mint: Pubkey,
        amount_in: int,
        minimum_amount_out: int,
        share_fee_rate: int = 0,
        pool_state: Optional[Pubkey] = None,
    ) -> Instruction:
        """
        Build SELL_EXACT_IN instruction.

        Args:
            user: Seller's wallet pubkey
            base_mint: Token mint being sold
            amount_in: Token base units to sell
            minimum_amount_out: Minimum lamports to receive (slippage protection)
            share_fee_rate: Referral share fee rate
            pool_state: Pool address if already known (derived otherwise)
        """
        if pool_state is None:
            pool_state = derive_pool_state(base_mint, self.quote_mint, self.program_id)

        # Instruction data: discriminator + three u64 little-endian args
        data = SELL_EXACT_IN_DISCRIMINATOR + struct.pack(
            "<QQQ", amount_in, minimum_amount_out, share_fee_rate
        )

        accounts = [
            AccountMeta(user, is_signer=True, is_writable=False),
            AccountMeta(derive_vault_authority(self.program_id), is_signer=False, is_writable=False),
            AccountMeta(self.global_config, is_signer=False, is_writable=False),
            AccountMeta(self.platform_config, is_signer=False, is_writable=False),
            AccountMeta(pool_state, is_signer=False, is_writable=True),
            AccountMeta(get_associated_token_address(user, base_mint), is_signer=False, is_writable=True),
            AccountMeta(get_associated_token_address(user, self.quote_mint), is_signer=False, is_writable=True),
            AccountMeta(derive_pool_vault(pool_state, base_mint, self.program_id), is_signer=False, is_writable=True),
            AccountMeta(derive_pool_vault(pool_state, self.quote_mint, self.program_id), is_signer=False, is_writable=True),
            AccountMeta(base_mint, is_signer=False, is_writable=False),
            AccountMeta(self.quote_mint, is_signer=False, is_writable=False),
            AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(derive_event_authority(self.program_id), is_signer=False, is_writable=False),
            AccountMeta(self.program_id, is_signer=False, is_writable=False),
        ]

        return Instruction(self.program_id, data, accounts)

    def build_sell_transaction_instructions(
        self,
        user: Pubkey,
        base_mint: Pubkey,
        amount_in: int,
        minimum_amount_out: int,
        compute_unit_limit: int,
        priority_fee_microlamports: int,
        share_fee_rate: int = 0,
        pool_state: Optional[Pubkey] = None,
    ) -> List[Instruction]:
        """
        Full instruction sequence for a sell.

        compute budget -> open wSOL ATA (idempotent) -> sell -> close wSOL ATA
        """
        wsol_account = get_associated_token_address(user, self.quote_mint)

        return [
            set_compute_unit_limit(compute_unit_limit),
            set_compute_unit_price(priority_fee_microlamports),
            create_idempotent_associated_token_account(user, user, self.quote_mint),
            self.build_sell_instruction(
                user, base_mint, amount_in, minimum_amount_out, share_fee_rate, pool_state
            ),
            close_account(CloseAccountParams(
                program_id=TOKEN_PROGRAM_ID,
                account=wsol_account,
                dest=user,
                owner=user,
            )),
        ]


def decode_sell_instruction(data: bytes) -> Tuple[int, int, int]:
    """
    Decode SELL_EXACT_IN instruction data.

    Returns:
        (amount_in, minimum_amount_out, share_fee_rate)
    """
    if len(data) < 32 or data[:8] != SELL_EXACT_IN_DISCRIMINATOR:
        raise ValueError("not a sell_exact_in instruction")
    return struct.unpack("<QQQ", data[8:32])
