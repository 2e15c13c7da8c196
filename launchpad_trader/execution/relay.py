"""
0slot Relay Client
==================

Low-latency submission channel for the primary venue. The relay speaks
plain Solana JSON-RPC `sendTransaction` and expects a tip transfer to its
tip account inside every transaction it forwards.

Usage:
    relay = ZeroSlotRelay("https://ny.0slot.trade", ZEROSLOT_TIP_ACCOUNT)
    tip_ix = relay.tip_instruction(payer, 1_000_000)
    signatures = await relay.send_transaction(signed_tx)
"""

import asyncio
import base64
import logging
from typing import Any, List, Optional

import aiohttp
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from ..core.config import ZEROSLOT_TIP_ACCOUNT
from ..errors import SubmitError


logger = logging.getLogger(__name__)


class ZeroSlotRelay:
    """Send signed transactions through the 0slot relay."""

    def __init__(
        self,
        url: str,
        tip_account: str = ZEROSLOT_TIP_ACCOUNT,
        api_key: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10.0,
    ):
        self.url = url
        self.tip_account = Pubkey.from_string(tip_account)
        self.api_key = api_key
        self.timeout = timeout
        self._session = session
        self._request_id = 0

    def tip_instruction(self, payer: Pubkey, lamports: int):
        """System transfer paying the relay tip"""
        return transfer(TransferParams(
            from_pubkey=payer,
            to_pubkey=self.tip_account,
            lamports=lamports,
        ))

    async def send_transaction(self, transaction: Any) -> List[str]:
        """
        Forward a signed transaction.

        Returns:
            Signatures reported by the relay (never empty)

        Raises:
            SubmitError: transport failure, RPC error or empty result
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": "sendTransaction",
            "params": [
                base64.b64encode(bytes(transaction)).decode(),
                {"encoding": "base64", "skipPreflight": True},
            ],
        }
        params = {"api-key": self.api_key} if self.api_key else None

        try:
            data = await self._post(payload, params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SubmitError(f"Relay request failed: {e}") from e

        if not isinstance(data, dict):
            raise SubmitError(f"Relay returned malformed reply: {str(data)[:200]}")
        if "error" in data:
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise SubmitError(f"Relay rejected transaction: {message}")

        result = data.get("result")
        if isinstance(result, str):
            signatures = [result]
        elif isinstance(result, list):
            signatures = [str(sig) for sig in result if sig]
        else:
            signatures = []

        if not signatures:
            raise SubmitError("Relay returned no signature")

        logger.debug("Relay accepted %s", signatures[0])
        return signatures

    async def _post(self, payload: dict, params: Optional[dict]) -> dict:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        if self._session is not None:
            return await self._request(self._session, payload, params, timeout)
        async with aiohttp.ClientSession() as session:
            return await self._request(session, payload, params, timeout)

    async def _request(self, session, payload: dict, params: Optional[dict], timeout) -> dict:
        async with session.post(self.url, json=payload, params=params, timeout=timeout) as resp:
            if resp.status != 200:
                text = await resp.text()
                raise SubmitError(f"Relay HTTP {resp.status}: {text[:200]}")
            return await resp.json(content_type=None)
