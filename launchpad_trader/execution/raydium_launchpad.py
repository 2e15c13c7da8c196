"""
Raydium Launchpad Venue
=======================

Primary venue: sell straight into the launchpad bonding curve with
hand-built instructions, submitted through the 0slot relay.

The minimum output is computed from the reserves carried by the
TradeInfo, so records flagged low_confidence (placeholder reserves)
are refused rather than sold against a made-up curve.

Usage:
    relay = ZeroSlotRelay(endpoints.relay_url, ZEROSLOT_TIP_ACCOUNT)
    primary = PrimaryVenueClient(rpc, relay, LaunchpadConfig())
    built = await primary.build_sell(trade_info, swap_config, keypair)
    signature = await primary.submit(built, recent_blockhash)
"""

import logging
from typing import Any, Optional

from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from spl.token.instructions import get_associated_token_address

from ..core.config import LaunchpadConfig, SwapConfig
from ..errors import BuildError, SubmitError
from ..models import TradeInfo
from .base import (
    BuiltSell,
    ExecutionVenue,
    VenueClient,
    fetch_token_balance,
    parse_mint,
    sell_amount,
)
from .launchpad_tx_builder import LaunchpadCurve, LaunchpadInstructionBuilder
from .relay import ZeroSlotRelay


logger = logging.getLogger(__name__)


class PrimaryVenueClient(VenueClient):
    """Direct launchpad sells via the relay."""

    venue = ExecutionVenue.RAYDIUM_LAUNCHPAD

    def __init__(
        self,
        rpc,
        relay: ZeroSlotRelay,
        launchpad_config: Optional[LaunchpadConfig] = None,
    ):
        self.rpc = rpc
        self.relay = relay
        self.builder = LaunchpadInstructionBuilder(launchpad_config)

    async def build_sell(
        self,
        trade_info: TradeInfo,
        sell_config: SwapConfig,
        wallet: Any,
    ) -> BuiltSell:
        """
        Build compute budget + sell_exact_in + relay tip for the held position.

        Raises:
            BuildError: invalid mint/pool, placeholder reserves, empty position
        """
        mint = parse_mint(trade_info.mint)

        if trade_info.low_confidence:
            raise BuildError(
                f"Reserves for {trade_info.mint} are placeholders; cannot bound slippage"
            )
        if trade_info.virtual_sol_reserves <= 0 or trade_info.virtual_token_reserves <= 0:
            raise BuildError(f"Missing reserves for {trade_info.mint}")

        pool_state = None
        if trade_info.pool_id:
            try:
                pool_state = Pubkey.from_string(trade_info.pool_id)
            except ValueError as e:
                raise BuildError(f"Invalid pool id {trade_info.pool_id!r}: {e}") from e

        owner = wallet.pubkey()
        balance = await fetch_token_balance(self.rpc, get_associated_token_address(owner, mint))
        amount_in = sell_amount(balance, sell_config.in_amount_fraction)
        if amount_in <= 0:
            raise BuildError(f"Nothing to sell: balance {balance} for {trade_info.mint}")

        expected_out = LaunchpadCurve.get_sell_quote(
            amount_in,
            trade_info.virtual_sol_reserves,
            trade_info.virtual_token_reserves,
        )
        min_amount_out = LaunchpadCurve.apply_slippage(expected_out, sell_config.slippage_bps)

        instructions = self.builder.build_sell_transaction_instructions(
            owner,
            mint,
            amount_in,
            min_amount_out,
            compute_unit_limit=sell_config.compute_unit_limit,
            priority_fee_microlamports=sell_config.priority_fee_microlamports,
            share_fee_rate=sell_config.share_fee_rate,
            pool_state=pool_state,
        )
        if sell_config.relay_tip_lamports:
            instructions.append(self.relay.tip_instruction(owner, sell_config.relay_tip_lamports))

        logger.debug(
            "Built launchpad sell %s | amount_in=%d expected=%d min_out=%d",
            trade_info.mint, amount_in, expected_out, min_amount_out,
        )

        return BuiltSell(
            signer=wallet,
            instructions=instructions,
            amount_in=amount_in,
            min_amount_out=min_amount_out,
        )

    async def submit(self, built: BuiltSell, recent_blockhash: Any) -> str:
        """Sign a legacy transaction and hand it to the relay."""
        if not built.instructions:
            raise SubmitError("Primary sell has no instructions")

        payer = built.signer.pubkey()
        try:
            message = Message.new_with_blockhash(built.instructions, payer, recent_blockhash)
            transaction = Transaction([built.signer], message, recent_blockhash)
        except (ValueError, TypeError) as e:
            raise SubmitError(f"Cannot sign transaction: {e}") from e

        signatures = await self.relay.send_transaction(transaction)
        return signatures[0]
