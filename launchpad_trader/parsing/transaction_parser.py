"""
Launchpad Transaction Parser
============================

Turns a streamed transaction update into a TradeInfo record.

Flow:
1. Relevance: the launchpad program must appear in the account keys
2. Mint: first post-trade token balance, skipping the wrapped SOL leg
3. Economics: decoded from the launchpad program's own TradeEvent
   self-CPI when present, otherwise conservative placeholders flagged low_confidence

Extraction is a pure function of the update: running it twice on the
same update yields equal records.

Usage:
    extractor = TradeEventExtractor(LaunchpadConfig())
    trade = extractor.extract(update)
    if trade and not trade.low_confidence:
        ...
"""

import logging
from typing import Optional

from ..core.config import LaunchpadConfig, LAMPORTS_PER_SOL, TOKEN_DECIMALS, WSOL_MINT
from ..models import DexType, InnerInstruction, TradeInfo, TransactionUpdate
from .decode import TradeEvent, decode_trade_event


BUY_MARKER = "Instruction: Buy"
SELL_MARKER = "Instruction: Sell"
SWAP_MARKER = "Instruction: Swap"

# Placeholder economics when no TradeEvent could be decoded
PLACEHOLDER_PRICE = 1_000_000_000               # lamports
PLACEHOLDER_SOL_CHANGE = 0.1
PLACEHOLDER_TOKEN_CHANGE = 1_000_000.0
PLACEHOLDER_LIQUIDITY = 1000.0
PLACEHOLDER_VIRTUAL_SOL = 30_000_000_000        # 30 SOL in lamports
PLACEHOLDER_VIRTUAL_TOKENS = 1_000_000_000_000_000

TOKEN_UNIT = 10 ** TOKEN_DECIMALS


def resolve_direction(update: TransactionUpdate) -> bool:
    """
    Direction from log markers, True for buy.

    Swap satisfies both the buy and sell detectors. Sell only when the
    sell detector fires and the buy detector does not, so a lone Swap
    marker (or no marker at all) resolves to buy.
    """
    logs = update.log_messages
    buy_detected = any(BUY_MARKER in log or SWAP_MARKER in log for log in logs)
    sell_detected = any(SELL_MARKER in log or SWAP_MARKER in log for log in logs)
    if sell_detected and not buy_detected:
        return False
    return True


def resolve_mint(update: TransactionUpdate, default_mint: str) -> str:
    """Traded mint from post balances, skipping the wrapped SOL leg."""
    balances = update.post_token_balances
    mint = ""
    if balances:
        mint = balances[0].mint
        if mint == WSOL_MINT and len(balances) > 1:
            mint = balances[1].mint
    return mint or default_mint


class TradeEventExtractor:
    """Extract TradeInfo records for one launchpad program."""

    def __init__(
        self,
        config: Optional[LaunchpadConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or LaunchpadConfig()
        self.logger = logger or logging.getLogger(__name__)

    def is_relevant(self, update: TransactionUpdate) -> bool:
        return self.config.program_id in update.account_keys

    def emitted_by_program(self, update: TransactionUpdate, ix: InnerInstruction) -> bool:
        index = ix.program_id_index
        if index < 0 or index >= len(update.account_keys):
            return False
        return update.account_keys[index] == self.config.program_id

    def extract(self, update: TransactionUpdate) -> Optional[TradeInfo]:
        """
        Extract a trade from a streamed update.

        Returns:
            TradeInfo, or None when the transaction is not a launchpad trade

        Raises:
            DecodeError: launchpad TradeEvent payload is malformed
        """
        if not self.is_relevant(update):
            return None

        inner = [
            ix
            for group in update.inner_instructions
            for ix in group.instructions
            if ix.data
        ]
        if not inner:
            return None

        # other Anchor programs emit TradeEvent under the same discriminator
        event = None
        for ix in inner:
            if not self.emitted_by_program(update, ix):
                continue
            event = decode_trade_event(ix.data)
            if event is not None:
                break

        mint = resolve_mint(update, self.config.default_mint)
        timestamp = update.block_time or update.received_at or 0

        if event is not None:
            trade = self._from_event(update, event, mint, timestamp)
        else:
            trade = self._placeholder(update, mint, timestamp)

        self.logger.debug(
            "Launchpad %s %s | mint=%s price=%d low_confidence=%s",
            "BUY" if trade.is_buy else "SELL",
            update.signature,
            trade.mint,
            trade.price,
            trade.low_confidence,
        )
        return trade

    def _from_event(
        self,
        update: TransactionUpdate,
        event: TradeEvent,
        mint: str,
        timestamp: int,
    ) -> TradeInfo:
        quote_reserve = event.quote_reserve
        base_reserve = event.base_reserve
        price = quote_reserve * TOKEN_UNIT // base_reserve if base_reserve else 0

        if event.is_buy:
            sol_change = -event.amount_in / LAMPORTS_PER_SOL
            token_change = event.amount_out / TOKEN_UNIT
        else:
            sol_change = event.amount_out / LAMPORTS_PER_SOL
            token_change = -event.amount_in / TOKEN_UNIT

        return TradeInfo(
            dex_type=DexType.RAYDIUM_LAUNCHPAD,
            slot=update.slot,
            signature=update.signature,
            pool_id=event.pool_state,
            mint=mint,
            timestamp=timestamp,
            is_buy=event.is_buy,
            price=price,
            is_reverse=False,   # launchpad pools are always token/SOL
            coin_creator=None,
            sol_change=sol_change,
            token_change=token_change,
            liquidity=quote_reserve / LAMPORTS_PER_SOL,
            virtual_sol_reserves=quote_reserve,
            virtual_token_reserves=base_reserve,
            low_confidence=False,
        )

    def _placeholder(self, update: TransactionUpdate, mint: str, timestamp: int) -> TradeInfo:
        is_buy = resolve_direction(update)
        return TradeInfo(
            dex_type=DexType.RAYDIUM_LAUNCHPAD,
            slot=update.slot,
            signature=update.signature,
            pool_id="",
            mint=mint,
            timestamp=timestamp,
            is_buy=is_buy,
            price=PLACEHOLDER_PRICE,
            is_reverse=False,
            coin_creator=None,
            sol_change=-PLACEHOLDER_SOL_CHANGE if is_buy else PLACEHOLDER_SOL_CHANGE,
            token_change=PLACEHOLDER_TOKEN_CHANGE if is_buy else -PLACEHOLDER_TOKEN_CHANGE,
            liquidity=PLACEHOLDER_LIQUIDITY,
            virtual_sol_reserves=PLACEHOLDER_VIRTUAL_SOL,
            virtual_token_reserves=PLACEHOLDER_VIRTUAL_TOKENS,
            low_confidence=True,
        )


def process_transaction(
    update: TransactionUpdate,
    config: Optional[LaunchpadConfig] = None,
) -> Optional[TradeInfo]:
    """One-shot extraction with a default extractor."""
    return TradeEventExtractor(config).extract(update)
