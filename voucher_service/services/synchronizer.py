"""Cache synchronization with the controller.

Refreshes are pull based: a user request, a successful mutation or the
periodic timer fetches the full voucher list and replaces the cache.

Concurrent refreshes are allowed. The controller offers no version token,
so the cache reflects whichever successful list response was applied last
(completion order, not start order). A refresh that fails leaves the cache
at its last good state.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from voucher_service.cache import VoucherCache
from voucher_service.controller.base import ControllerClient
from voucher_service.exceptions import ControllerError, SyncError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheSynchronizer:
    """Keeps a VoucherCache in step with the controller."""

    def __init__(
        self,
        client: ControllerClient,
        cache: VoucherCache,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.cache = cache
        self._clock = clock

    async def refresh(self) -> int:
        """Fetch the controller voucher list and replace the cache with it.

        Returns:
            The number of vouchers now cached.

        Raises:
            SyncError: If the controller could not be queried or its answer
                could not be read. Any failure is reported this way and
                the cache is left unchanged.
        """
        logger.info("[Cache] Requesting UniFi Vouchers...")
        try:
            vouchers = await self.client.list()
        except ControllerError as e:
            logger.error("[Cache] Error requesting vouchers: %s", e.message)
            raise SyncError(e.message) from e
        except Exception as e:
            logger.exception("[Cache] Error requesting vouchers: %s", e)
            raise SyncError(f"Unexpected error while requesting vouchers: {e}") from e

        # No await between the list result and the replace
        self.cache.replace(vouchers, self._clock())
        logger.info("[Cache] Saved %d voucher(s)", len(vouchers))
        return len(vouchers)

    async def run_periodic(self, interval_seconds: float) -> None:
        """Refresh forever, once per interval, until cancelled.

        Failures are logged and the loop carries on with the next interval.
        """
        while True:
            await asyncio.sleep(interval_seconds)
            logger.info("[Auto Sync] Starting Sync...")
            try:
                await self.refresh()
            except SyncError:
                logger.warning(
                    "[Auto Sync] Sync failed, keeping cached vouchers for another %d seconds",
                    interval_seconds,
                )
