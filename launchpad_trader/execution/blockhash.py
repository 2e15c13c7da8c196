"""
Blockhash cache.

Sell attempts share one recent blockhash, refreshed from the RPC once it is
older than max_age seconds.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from ..errors import SubmitError


logger = logging.getLogger(__name__)


class BlockhashCache:
    """Cached get_latest_blockhash()"""

    def __init__(
        self,
        rpc,
        max_age: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rpc = rpc
        self.max_age = max_age
        self._clock = clock
        self._blockhash: Optional[Any] = None
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    async def get_latest_blockhash(self) -> Any:
        """
        Recent blockhash (solders Hash).

        Raises:
            SubmitError: refresh failed and no fresh value is cached
        """
        async with self._lock:
            if self._blockhash is not None and self._clock() - self._fetched_at < self.max_age:
                return self._blockhash

            try:
                resp = await self.rpc.get_latest_blockhash()
                blockhash = resp.value.blockhash
            except Exception as e:
                raise SubmitError(f"Failed to get recent blockhash: {e}") from e

            self._blockhash = blockhash
            self._fetched_at = self._clock()
            logger.debug("Blockhash refreshed: %s", blockhash)
            return blockhash
