import asyncio
from typing import List, Optional, Sequence

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from launchpad_trader.core.config import RAYDIUM_LAUNCHPAD_PROGRAM, WSOL_MINT
from launchpad_trader.models import (
    DexType,
    InnerInstruction,
    InnerInstructionSet,
    TokenBalance,
    TradeInfo,
    TransactionUpdate,
)
from launchpad_trader.parsing.decode import TradeEvent

from .fakes import POOL, TOKEN_X, FakeRpc


@pytest.fixture
def wallet():
    return Keypair()


@pytest.fixture
def make_update():
    """Factory for TransactionUpdate fixtures."""
    def _make(
        account_keys: Sequence[str] = (RAYDIUM_LAUNCHPAD_PROGRAM,),
        logs: Sequence[str] = (),
        payloads: Sequence[bytes] = (b"\x01\x02\x03",),
        post_mints: Sequence[str] = (WSOL_MINT, TOKEN_X),
        block_time: Optional[int] = 1_700_000_000,
        signature: str = "5sig",
        slot: int = 250_000_000,
        program_index: int = 0,
    ) -> TransactionUpdate:
        return TransactionUpdate(
            signature=signature,
            slot=slot,
            account_keys=tuple(account_keys),
            log_messages=tuple(logs),
            inner_instructions=(
                InnerInstructionSet(
                    index=0,
                    instructions=tuple(InnerInstruction(program_index, data) for data in payloads),
                ),
            ) if payloads else (),
            post_token_balances=tuple(
                TokenBalance(account_index=i, mint=mint) for i, mint in enumerate(post_mints)
            ),
            block_time=block_time,
        )
    return _make


@pytest.fixture
def trade_event():
    """Sell event on a pool with 30 SOL virtual quote and 1.073e15 virtual base."""
    return TradeEvent(
        pool_state=POOL,
        total_base_sell=793_100_000_000_000,
        virtual_base=1_073_025_605_596_382,
        virtual_quote=30_000_852_951,
        real_base_before=100_000_000_000_000,
        real_quote_before=3_000_000_000,
        real_base_after=99_000_000_000_000,
        real_quote_after=2_970_000_000,
        amount_in=1_000_000_000_000,
        amount_out=30_000_000,
        protocol_fee=75_000,
        platform_fee=300_000,
        share_fee=0,
        trade_direction=1,
        pool_status=0,
    )


@pytest.fixture
def position():
    """Confident position record for sell tests."""
    return TradeInfo(
        dex_type=DexType.RAYDIUM_LAUNCHPAD,
        slot=1,
        signature="5sig",
        pool_id=POOL,
        mint=TOKEN_X,
        timestamp=1_700_000_000,
        is_buy=True,
        price=32_000,
        virtual_sol_reserves=32_970_852_951,
        virtual_token_reserves=974_025_605_596_382,
    )


@pytest.fixture
def fake_rpc():
    return FakeRpc()


@pytest.fixture
def no_sleep():
    """Sleep replacement recording requested delays."""
    delays: List[float] = []

    async def _sleep(delay: float):
        delays.append(delay)
        await asyncio.sleep(0)

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def unique_pubkey():
    return lambda: str(Pubkey.new_unique())
