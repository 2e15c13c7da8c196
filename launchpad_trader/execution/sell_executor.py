"""
Resilient Sell Executor
=======================

Primary venue with bounded retries, then one fallback attempt.

    TRYING_PRIMARY(n) --fail, n < max--> TRYING_PRIMARY(n+1)
    TRYING_PRIMARY(n) --fail, n = max--> TRYING_FALLBACK
    TRYING_PRIMARY / TRYING_FALLBACK --verified--> SUCCEEDED
    TRYING_FALLBACK --fail--> FAILED
    any --cancel--> FAILED (fallback never started after a cancel)

Every attempt is build -> blockhash -> submit -> verify, strictly in
sequence. attempt_count only counts primary attempts.

execute_sell never raises: every failure ends up in the SellOutcome.
Progress is reported through an injected SellObserver at attempt start,
attempt result and final outcome.

Usage:
    executor = ResilientSellExecutor(
        primary, fallback, verifier, blockhash_cache, keypair,
        observer=LoggingSellObserver(logging.getLogger("sell")),
    )
    outcome = await executor.execute_sell(trade_info, SwapConfig())
    if not outcome.success:
        logger.error(outcome.error)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from ..core.config import RetryConfig, SwapConfig
from ..errors import OperationCancelled, VerificationTimeout
from ..models import SellOutcome, TradeInfo
from .base import VenueClient
from .confirmation import ConfirmationVerifier, Sleep, cancellable_sleep


logger = logging.getLogger(__name__)


# ============================================================
# OBSERVERS
# ============================================================

class SellObserver(ABC):
    """Checkpoint callbacks. Errors raised here are logged and ignored."""

    @abstractmethod
    def on_attempt_start(self, venue: str, attempt: int, trade_info: TradeInfo):
        pass

    @abstractmethod
    def on_attempt_result(
        self,
        venue: str,
        attempt: int,
        signature: Optional[str],
        error: Optional[str],
    ):
        pass

    @abstractmethod
    def on_outcome(self, trade_info: TradeInfo, outcome: SellOutcome):
        pass


class NullSellObserver(SellObserver):
    def on_attempt_start(self, venue, attempt, trade_info):
        pass

    def on_attempt_result(self, venue, attempt, signature, error):
        pass

    def on_outcome(self, trade_info, outcome):
        pass


class LoggingSellObserver(SellObserver):
    """Report checkpoints to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def on_attempt_start(self, venue, attempt, trade_info):
        self.logger.info("SELL %s | %s attempt %d", trade_info.mint, venue, attempt)

    def on_attempt_result(self, venue, attempt, signature, error):
        if error is None:
            self.logger.info("SELL %s attempt %d confirmed: %s", venue, attempt, signature)
        else:
            self.logger.warning("SELL %s attempt %d failed: %s", venue, attempt, error)

    def on_outcome(self, trade_info, outcome):
        if outcome.success:
            self.logger.info(
                "SELL DONE %s | sig=%s venue=%s attempts=%d fallback=%s",
                trade_info.mint, outcome.signature, outcome.venue,
                outcome.attempt_count, outcome.used_fallback_venue,
            )
        else:
            self.logger.error(
                "SELL FAILED %s | attempts=%d fallback=%s error=%s",
                trade_info.mint, outcome.attempt_count,
                outcome.used_fallback_venue, outcome.error,
            )


# ============================================================
# STATE MACHINE
# ============================================================

class SellState(Enum):
    TRYING_PRIMARY = "trying_primary"
    TRYING_FALLBACK = "trying_fallback"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SellStateMachine:
    """Attempt counting and exit conditions, free of any I/O."""

    def __init__(self, max_primary_attempts: int):
        if max_primary_attempts < 1:
            raise ValueError("max_primary_attempts must be at least 1")
        self.max_primary_attempts = max_primary_attempts
        self.state = SellState.TRYING_PRIMARY
        self.attempt = 0
        self.last_error: Optional[str] = None
        self.signature: Optional[str] = None
        self.venue: Optional[str] = None
        self.used_fallback_venue = False

    @property
    def done(self) -> bool:
        return self.state in (SellState.SUCCEEDED, SellState.FAILED)

    def start_primary_attempt(self) -> int:
        if self.state is not SellState.TRYING_PRIMARY:
            raise RuntimeError(f"Cannot start primary attempt in state {self.state.name}")
        self.attempt += 1
        return self.attempt

    def record_failure(self, error: str):
        """Failed attempt; moves to fallback once primary attempts run out."""
        self.last_error = error
        if self.state is SellState.TRYING_PRIMARY:
            if self.attempt >= self.max_primary_attempts:
                self.state = SellState.TRYING_FALLBACK
                self.used_fallback_venue = True
        elif self.state is SellState.TRYING_FALLBACK:
            self.state = SellState.FAILED
        else:
            raise RuntimeError(f"Cannot record failure in state {self.state.name}")

    def record_success(self, signature: str, venue: str):
        if self.done:
            raise RuntimeError(f"Cannot record success in state {self.state.name}")
        self.signature = signature
        self.venue = venue
        self.state = SellState.SUCCEEDED

    def cancel(self, error: str):
        """Stop where we are; the fallback is not started."""
        if not self.done:
            self.last_error = error
            self.state = SellState.FAILED

    def to_outcome(self) -> SellOutcome:
        if self.state is SellState.SUCCEEDED:
            return SellOutcome(
                success=True,
                signature=self.signature,
                used_fallback_venue=self.used_fallback_venue,
                attempt_count=self.attempt,
                venue=self.venue,
            )
        if self.state is SellState.FAILED:
            return SellOutcome(
                success=False,
                signature=None,
                error=self.last_error or "Sell failed",
                used_fallback_venue=self.used_fallback_venue,
                attempt_count=self.attempt,
            )
        raise RuntimeError(f"No outcome yet in state {self.state.name}")


# ============================================================
# EXECUTOR
# ============================================================

class ResilientSellExecutor:
    """Drive one sell through primary retries and the fallback venue."""

    def __init__(
        self,
        primary: VenueClient,
        fallback: VenueClient,
        verifier: ConfirmationVerifier,
        blockhash_source,
        wallet: Any,
        retry_config: Optional[RetryConfig] = None,
        observer: Optional[SellObserver] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.primary = primary
        self.fallback = fallback
        self.verifier = verifier
        self.blockhash_source = blockhash_source
        self.wallet = wallet
        self.retry_config = retry_config or RetryConfig()
        self.observer = observer or NullSellObserver()
        self._sleep = sleep

    async def execute_sell(
        self,
        trade_info: TradeInfo,
        sell_config: SwapConfig,
        cancel: Optional[asyncio.Event] = None,
    ) -> SellOutcome:
        machine = SellStateMachine(self.retry_config.max_primary_attempts)

        try:
            while machine.state is SellState.TRYING_PRIMARY:
                _check_cancel(cancel)
                attempt = machine.start_primary_attempt()
                await self._run_attempt(machine, self.primary, attempt, trade_info, sell_config, cancel)
                if machine.state is SellState.TRYING_PRIMARY:
                    await cancellable_sleep(self.retry_config.retry_delay, cancel, self._sleep)

            if machine.state is SellState.TRYING_FALLBACK:
                await self._run_attempt(machine, self.fallback, 1, trade_info, sell_config, cancel)
        except OperationCancelled as e:
            machine.cancel(f"Cancelled: {e}")

        outcome = machine.to_outcome()
        self._notify("on_outcome", trade_info, outcome)
        return outcome

    def _notify(self, checkpoint: str, *args):
        try:
            getattr(self.observer, checkpoint)(*args)
        except Exception as e:
            logger.warning("Sell observer %s failed: %s: %s", checkpoint, type(e).__name__, e)

    async def _run_attempt(
        self,
        machine: SellStateMachine,
        venue: VenueClient,
        attempt: int,
        trade_info: TradeInfo,
        sell_config: SwapConfig,
        cancel: Optional[asyncio.Event],
    ):
        self._notify("on_attempt_start", venue.name, attempt, trade_info)
        try:
            signature = await self._sell_once(venue, trade_info, sell_config, cancel)
        except OperationCancelled:
            raise
        except Exception as e:
            error = f"{venue.name}: {type(e).__name__}: {e}"
            machine.record_failure(error)
            self._notify("on_attempt_result", venue.name, attempt, None, error)
            return

        machine.record_success(signature, venue.name)
        self._notify("on_attempt_result", venue.name, attempt, signature, None)

    async def _sell_once(
        self,
        venue: VenueClient,
        trade_info: TradeInfo,
        sell_config: SwapConfig,
        cancel: Optional[asyncio.Event],
    ) -> str:
        """build -> blockhash -> submit -> verify; returns the confirmed signature."""
        _check_cancel(cancel)

        built = await venue.build_sell(trade_info, sell_config, self.wallet)
        recent_blockhash = await self.blockhash_source.get_latest_blockhash()
        signature = await venue.submit(built, recent_blockhash)

        attempts = self.retry_config.verify_attempts
        if not await self.verifier.verify(signature, attempts, cancel):
            raise VerificationTimeout(signature, attempts)
        return signature


def _check_cancel(cancel: Optional[asyncio.Event]):
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("Cancelled before attempt")


async def execute_sell_with_retry(
    trade_info: TradeInfo,
    sell_config: SwapConfig,
    primary: VenueClient,
    fallback: VenueClient,
    verifier: ConfirmationVerifier,
    blockhash_source,
    wallet: Any,
    retry_config: Optional[RetryConfig] = None,
    observer: Optional[SellObserver] = None,
    cancel: Optional[asyncio.Event] = None,
) -> SellOutcome:
    """One-shot sell with a throwaway executor."""
    executor = ResilientSellExecutor(
        primary,
        fallback,
        verifier,
        blockhash_source,
        wallet,
        retry_config=retry_config,
        observer=observer,
    )
    return await executor.execute_sell(trade_info, sell_config, cancel)
