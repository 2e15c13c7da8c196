import hashlib

import pytest
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from launchpad_trader.core.config import (
    LAUNCHPAD_GLOBAL_CONFIG,
    RAYDIUM_LAUNCHPAD_PROGRAM,
    WSOL_MINT,
)
from launchpad_trader.execution.launchpad_tx_builder import (
    SELL_EXACT_IN_DISCRIMINATOR,
    LaunchpadCurve,
    LaunchpadInstructionBuilder,
    decode_sell_instruction,
    derive_pool_state,
)

from .fakes import POOL, TOKEN_X


PROGRAM = Pubkey.from_string(RAYDIUM_LAUNCHPAD_PROGRAM)
MINT = Pubkey.from_string(TOKEN_X)
WSOL = Pubkey.from_string(WSOL_MINT)


@pytest.fixture
def builder():
    return LaunchpadInstructionBuilder()


def test_discriminator_is_anchor_sighash():
    assert SELL_EXACT_IN_DISCRIMINATOR == hashlib.sha256(b"global:sell_exact_in").digest()[:8]


def test_sell_instruction_data(builder, wallet):
    ix = builder.build_sell_instruction(wallet.pubkey(), MINT, 5_000_000, 120_000, 7)

    assert ix.program_id == PROGRAM
    assert decode_sell_instruction(bytes(ix.data)) == (5_000_000, 120_000, 7)


def test_sell_instruction_accounts(builder, wallet):
    user = wallet.pubkey()
    ix = builder.build_sell_instruction(user, MINT, 1, 0)
    accounts = ix.accounts

    assert len(accounts) == 15
    assert accounts[0].pubkey == user and accounts[0].is_signer
    assert accounts[2].pubkey == Pubkey.from_string(LAUNCHPAD_GLOBAL_CONFIG)
    assert accounts[4].pubkey == derive_pool_state(MINT, WSOL, PROGRAM)
    assert accounts[4].is_writable
    assert accounts[5].pubkey == get_associated_token_address(user, MINT)
    assert accounts[6].pubkey == get_associated_token_address(user, WSOL)
    assert accounts[9].pubkey == MINT
    assert accounts[10].pubkey == WSOL
    assert accounts[14].pubkey == PROGRAM
    assert [a.is_signer for a in accounts].count(True) == 1


def test_known_pool_is_used(builder, wallet):
    pool = Pubkey.from_string(POOL)
    ix = builder.build_sell_instruction(wallet.pubkey(), MINT, 1, 0, pool_state=pool)
    assert ix.accounts[4].pubkey == pool


def test_transaction_sequence(builder, wallet):
    instructions = builder.build_sell_transaction_instructions(
        wallet.pubkey(), MINT, 1_000, 10,
        compute_unit_limit=150_000,
        priority_fee_microlamports=100_000,
    )
    assert len(instructions) == 5
    assert instructions[3].program_id == PROGRAM


def test_decode_rejects_other_data():
    with pytest.raises(ValueError):
        decode_sell_instruction(b"\x00" * 32)


def test_sell_quote_constant_product():
    quote_reserve = 30_000_000_000
    base_reserve = 1_000_000_000_000_000
    amount_in = 10_000_000_000_000     # 1% of the base reserve

    out = LaunchpadCurve.get_sell_quote(amount_in, quote_reserve, base_reserve)

    gross = quote_reserve - -(-quote_reserve * base_reserve // (base_reserve + amount_in))
    assert out == gross - gross * 2_500 // 1_000_000
    assert 0 < out < quote_reserve * amount_in // base_reserve


@pytest.mark.parametrize("args", [(0, 1, 1), (1, 0, 1), (1, 1, 0)])
def test_sell_quote_degenerate_inputs(args):
    assert LaunchpadCurve.get_sell_quote(*args) == 0


def test_apply_slippage():
    assert LaunchpadCurve.apply_slippage(1_000_000, 1000) == 900_000
    assert LaunchpadCurve.apply_slippage(1_000_000, 0) == 1_000_000
    assert LaunchpadCurve.apply_slippage(1_000_000, 10_000) == 0
