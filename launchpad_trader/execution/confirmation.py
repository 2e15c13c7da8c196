"""
Confirmation Verifier
=====================

Bounded polling of the ledger until a signature is confirmed.

Per attempt:
- Confirmed / Finalized      -> return True
- Processed, unseen, error   -> wait backoff, query again
- Landed with an exec error  -> raise TransactionFailed
Budget exhausted             -> raise VerificationTimeout(attempts)

Worst case wall clock is (max_attempts - 1) * backoff: there is no wait
after the final query.

Usage:
    verifier = ConfirmationVerifier(RpcLedger(rpc), backoff=2.0)
    await verifier.verify(signature, max_attempts=3)
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from ..errors import OperationCancelled, TransactionFailed, VerificationTimeout
from ..models import ConfirmationLevel, LedgerStatus


Sleep = Callable[[float], Awaitable[None]]


def _confirmation_level(status) -> Optional[ConfirmationLevel]:
    if status == TransactionConfirmationStatus.Finalized:
        return ConfirmationLevel.FINALIZED
    if status == TransactionConfirmationStatus.Confirmed:
        return ConfirmationLevel.CONFIRMED
    if status == TransactionConfirmationStatus.Processed:
        return ConfirmationLevel.PROCESSED
    return None


async def cancellable_sleep(
    delay: float,
    cancel: Optional[asyncio.Event] = None,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """
    Suspend for delay seconds, waking early if cancel is set.

    Raises:
        OperationCancelled: cancel was set before or during the wait
    """
    if cancel is None:
        await sleep(delay)
        return
    if cancel.is_set():
        raise OperationCancelled("Cancelled before wait")

    sleeper = asyncio.ensure_future(sleep(delay))
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, waiter):
            if not task.done():
                task.cancel()

    if cancel.is_set():
        raise OperationCancelled("Cancelled during wait")


class RpcLedger:
    """Signature status lookups over a solana-py AsyncClient."""

    def __init__(self, rpc):
        self.rpc = rpc

    async def get_status(self, signature: str) -> Optional[LedgerStatus]:
        """None when the ledger has not seen the signature yet."""
        resp = await self.rpc.get_signature_statuses([Signature.from_string(signature)])
        status = resp.value[0] if resp.value else None
        if status is None:
            return None

        level = _confirmation_level(status.confirmation_status)
        error = str(status.err) if status.err is not None else None
        return LedgerStatus(level=level, error=error)


class ConfirmationVerifier:
    """Poll a ledger until a signature reaches confirmed/finalized."""

    def __init__(
        self,
        ledger,
        backoff: float = 2.0,
        logger: Optional[logging.Logger] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.ledger = ledger
        self.backoff = backoff
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    async def verify(
        self,
        signature: str,
        max_attempts: int,
        cancel: Optional[asyncio.Event] = None,
    ) -> bool:
        """
        Returns True once confirmed.

        Raises:
            TransactionFailed: the transaction landed with an error
            VerificationTimeout: not confirmed within max_attempts queries
            OperationCancelled: cancel fired between queries
        """
        for attempt in range(1, max_attempts + 1):
            if cancel is not None and cancel.is_set():
                raise OperationCancelled(f"Verification of {signature} cancelled")

            try:
                status = await self.ledger.get_status(signature)
            except Exception as e:
                self.logger.warning(
                    "Status query %d/%d for %s failed: %s", attempt, max_attempts, signature, e
                )
                status = None

            if status is not None:
                if status.error is not None:
                    raise TransactionFailed(signature, status.error)
                if status.is_confirmed:
                    self.logger.info(
                        "Transaction %s %s (attempt %d)", signature, status.level.value, attempt
                    )
                    return True

            self.logger.debug(
                "Transaction %s not confirmed yet (%d/%d)", signature, attempt, max_attempts
            )
            if attempt < max_attempts:
                await cancellable_sleep(self.backoff, cancel, self._sleep)

        raise VerificationTimeout(signature, max_attempts)
