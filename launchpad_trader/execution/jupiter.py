"""
Jupiter Aggregator Venue
========================

Fallback venue: Jupiter picks the route, we only sign and broadcast.

Flow:
1. GET  /quote  held token amount -> wrapped SOL
2. POST /swap   fully-formed unsigned VersionedTransaction for that quote
3. Sign, send, confirm through the standard RPC path

Usage:
    jupiter = JupiterClient("https://quote-api.jup.ag/v6")
    fallback = FallbackVenueClient(rpc, jupiter)
    built = await fallback.build_sell(trade_info, swap_config, keypair)
    signature = await fallback.submit(built, recent_blockhash)
"""

import asyncio
import base64
import logging
from typing import Any, Dict, Optional

import aiohttp
from solana.rpc.commitment import Confirmed
from solana.rpc.models import TxOpts
from solders.transaction import VersionedTransaction
from spl.token.instructions import get_associated_token_address

from ..core.config import SwapConfig, WSOL_MINT
from ..errors import BuildError, QuoteError, RouteError, SubmitError
from ..models import TradeInfo
from .base import (
    BuiltSell,
    ExecutionVenue,
    VenueClient,
    fetch_token_balance,
    parse_mint,
    sell_amount,
)


logger = logging.getLogger(__name__)


class JupiterClient:
    """Minimal Jupiter v6 quote/swap API client."""

    def __init__(
        self,
        base_url: str = "https://quote-api.jup.ag/v6",
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
    ) -> Dict[str, Any]:
        """
        Quote a swap of `amount` base units of input_mint.

        Raises:
            QuoteError: no route, HTTP failure or malformed reply
        """
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
        }
        try:
            status, data = await self._request("GET", "/quote", params=params)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise QuoteError(f"Quote request failed: {e}") from e

        if status != 200 or not isinstance(data, dict) or "error" in data:
            raise QuoteError(f"Quote unavailable (HTTP {status}): {_error_text(data)}")
        if "outAmount" not in data:
            raise QuoteError("Quote reply missing outAmount")
        return data

    async def get_swap_transaction(
        self,
        quote: Dict[str, Any],
        payer: str,
        source_account: Optional[str] = None,
        destination_account: Optional[str] = None,
    ) -> VersionedTransaction:
        """
        Fetch the unsigned swap transaction for a quote.

        Jupiter derives the input account from the payer, so source_account
        is only logged. With no destination_account the output is unwrapped
        to native SOL.

        Raises:
            RouteError: HTTP failure, error reply or undecodable transaction
        """
        body = {
            "quoteResponse": quote,
            "userPublicKey": payer,
            "wrapAndUnwrapSol": destination_account is None,
            "dynamicComputeUnitLimit": True,
        }
        if destination_account is not None:
            body["destinationTokenAccount"] = destination_account

        logger.debug("Jupiter swap request payer=%s source=%s", payer, source_account)

        try:
            status, data = await self._request("POST", "/swap", json=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RouteError(f"Swap request failed: {e}") from e

        if status != 200 or not isinstance(data, dict) or "swapTransaction" not in data:
            raise RouteError(f"Swap transaction unavailable (HTTP {status}): {_error_text(data)}")

        try:
            raw = base64.b64decode(data["swapTransaction"])
            return VersionedTransaction.from_bytes(raw)
        except Exception as e:
            raise RouteError(f"Cannot decode swap transaction: {e}") from e

    async def _request(self, method: str, path: str, **kwargs):
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        url = self.base_url + path
        if self._session is not None:
            return await self._send(self._session, method, url, timeout, **kwargs)
        async with aiohttp.ClientSession() as session:
            return await self._send(session, method, url, timeout, **kwargs)

    @staticmethod
    async def _send(session, method: str, url: str, timeout, **kwargs):
        async with session.request(method, url, timeout=timeout, **kwargs) as resp:
            try:
                data = await resp.json(content_type=None)
            except ValueError:
                data = await resp.text()
            return resp.status, data


def _error_text(data: Any) -> str:
    if isinstance(data, dict):
        return str(data.get("error") or data.get("message") or data)
    return str(data)[:200]


class FallbackVenueClient(VenueClient):
    """Sell through Jupiter with a broadcast-and-confirm submission."""

    venue = ExecutionVenue.JUPITER

    def __init__(self, rpc, jupiter: JupiterClient, quote_mint: str = WSOL_MINT):
        self.rpc = rpc
        self.jupiter = jupiter
        self.quote_mint = quote_mint

    async def build_sell(
        self,
        trade_info: TradeInfo,
        sell_config: SwapConfig,
        wallet: Any,
    ) -> BuiltSell:
        mint = parse_mint(trade_info.mint)
        owner = wallet.pubkey()
        source_account = get_associated_token_address(owner, mint)

        balance = await fetch_token_balance(self.rpc, source_account)
        amount = sell_amount(balance, sell_config.in_amount_fraction)
        if amount <= 0:
            raise BuildError(f"Nothing to sell: balance {balance} for {trade_info.mint}")

        quote = await self.jupiter.get_quote(
            trade_info.mint,
            self.quote_mint,
            amount,
            sell_config.slippage_bps,
        )
        transaction = await self.jupiter.get_swap_transaction(
            quote,
            str(owner),
            source_account=str(source_account),
            destination_account=None,
        )

        return BuiltSell(
            signer=wallet,
            transaction=transaction,
            amount_in=amount,
            min_amount_out=int(quote.get("otherAmountThreshold", 0)),
        )

    async def submit(self, built: BuiltSell, recent_blockhash: Any) -> str:
        """
        Sign and send-and-confirm the routed transaction.

        The route already carries its own blockhash, so recent_blockhash
        is not used here.
        """
        if built.transaction is None:
            raise SubmitError("Fallback sell has no routed transaction")

        try:
            signed = VersionedTransaction(built.transaction.message, [built.signer])
            resp = await self.rpc.send_transaction(
                signed,
                opts=TxOpts(skip_preflight=True, max_retries=3),
            )
            signature = resp.value
            await self.rpc.confirm_transaction(signature, commitment=Confirmed)
        except Exception as e:
            raise SubmitError(f"Fallback broadcast failed: {e}") from e

        return str(signature)
