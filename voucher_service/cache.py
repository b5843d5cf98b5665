"""In-memory store for the last known controller voucher list.

The store holds a single immutable snapshot and swaps it as a whole, so a
reader sees either the state before a replace or the state after it, never
a mix of the two. Request handlers may run on worker threads, so the swap
and the read are additionally guarded by a lock.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

from voucher_service.schemas import VoucherRecord


@dataclass(frozen=True)
class CacheSnapshot:
    """Vouchers as of ``updated_at`` (None before the first sync)."""

    vouchers: Tuple[VoucherRecord, ...] = ()
    updated_at: Optional[datetime] = None


class VoucherCache:
    """Process-wide voucher cache, written only by the synchronizer."""

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = CacheSnapshot()

    def snapshot(self) -> CacheSnapshot:
        with self._lock:
            return self._snapshot

    def replace(self, vouchers: Iterable[VoucherRecord], at: datetime) -> CacheSnapshot:
        """Replace the cached vouchers and their timestamp in one step.

        ``updated_at`` never moves backwards: if ``at`` is older than the
        current timestamp, the current timestamp is kept.

        Returns:
            The snapshot now held by the cache.
        """
        records = tuple(vouchers)
        with self._lock:
            previous = self._snapshot.updated_at
            if previous is not None and at < previous:
                at = previous
            self._snapshot = CacheSnapshot(vouchers=records, updated_at=at)
            return self._snapshot

    def find(self, voucher_id: str) -> Optional[VoucherRecord]:
        """Look up a cached voucher by its controller id."""
        for voucher in self.snapshot().vouchers:
            if voucher.id == voucher_id:
                return voucher
        return None

    def __len__(self) -> int:
        return len(self.snapshot().vouchers)
