"""
Launchpad Transaction Stream
============================

Websocket feed of launchpad transactions (Helius-style
`transactionSubscribe`). Each notification becomes a TransactionUpdate,
goes through the extractor, and detected trades are handed to on_trade.

Usage:
    async def on_trade(trade: TradeInfo):
        print(trade.mint, trade.is_buy)

    stream = TransactionStream(ws_url, RAYDIUM_LAUNCHPAD_PROGRAM,
                               TradeEventExtractor(), on_trade)
    await stream.run()
"""

import asyncio
import json
import logging
import time
from typing import Awaitable, Callable, Optional

import aiohttp

from ..errors import DecodeError
from ..models import TradeInfo, TransactionUpdate
from ..parsing import TradeEventExtractor


logger = logging.getLogger(__name__)

RECONNECT_DELAY = 5.0


class TransactionStream:
    """Subscribe to one program's transactions and extract trades."""

    def __init__(
        self,
        ws_url: str,
        program_id: str,
        extractor: TradeEventExtractor,
        on_trade: Callable[[TradeInfo], Awaitable[None]],
        reconnect_delay: float = RECONNECT_DELAY,
        commitment: str = "confirmed",
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
    ):
        self.ws_url = ws_url
        self.program_id = program_id
        self.extractor = extractor
        self.on_trade = on_trade
        self.reconnect_delay = reconnect_delay
        self.commitment = commitment
        self.session_factory = session_factory
        self._running = False
        self.stats = {
            'messages': 0,
            'trades': 0,
            'decode_errors': 0,
            'reconnections': 0,
            'errors': 0,
        }

    def subscribe_request(self) -> dict:
        return {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "transactionSubscribe",
            "params": [
                {
                    "accountInclude": [self.program_id],
                    "failed": False,
                },
                {
                    "commitment": self.commitment,
                    "encoding": "json",
                    "transactionDetails": "full",
                    "showRewards": False,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        }

    async def run(self):
        """Connect, subscribe and dispatch until stop() is called."""
        self._running = True

        while self._running:
            try:
                logger.info("Connecting to %s", self.ws_url)
                async with self.session_factory() as session:
                    async with session.ws_connect(self.ws_url, heartbeat=30) as ws:
                        await ws.send_json(self.subscribe_request())
                        logger.info("Subscribed to %s transactions", self.program_id)

                        async for msg in ws:
                            if not self._running:
                                break
                            if msg.type == aiohttp.WSMsgType.TEXT:
                                await self.handle_message(msg.data)
                            elif msg.type == aiohttp.WSMsgType.ERROR:
                                logger.error("WebSocket error: %s", ws.exception())
                                break

            except Exception as e:
                logger.error("Stream error: %s: %s", type(e).__name__, e)
                self.stats['errors'] += 1

            if self._running:
                self.stats['reconnections'] += 1
                logger.info("Reconnecting in %ss...", self.reconnect_delay)
                await asyncio.sleep(self.reconnect_delay)

    def stop(self):
        self._running = False

    async def handle_message(self, data: str) -> Optional[TradeInfo]:
        """Process one websocket frame; returns the trade when one was found."""
        self.stats['messages'] += 1

        try:
            msg = json.loads(data)
        except ValueError:
            logger.warning("Ignoring non-JSON frame")
            return None

        result = msg.get("params", {}).get("result") if isinstance(msg, dict) else None
        if not result:
            # subscription acks and pings
            return None

        try:
            update = TransactionUpdate.from_rpc_json(result, received_at=int(time.time()))
            if update.failed:
                return None
            trade = self.extractor.extract(update)
        except DecodeError as e:
            self.stats['decode_errors'] += 1
            logger.warning("Skipping undecodable transaction: %s", e)
            return None

        if trade is None:
            return None

        self.stats['trades'] += 1
        try:
            await self.on_trade(trade)
        except Exception as e:
            self.stats['errors'] += 1
            logger.error("Trade handler failed for %s: %s: %s", trade.signature, type(e).__name__, e)
        return trade
