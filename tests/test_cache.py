"""Tests for the in-memory voucher cache."""

import threading
from datetime import datetime, timedelta, timezone

from fakes import make_voucher
from voucher_service.cache import CacheSnapshot, VoucherCache

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestInitialState:
    """Tests for a freshly created cache."""

    def test_empty_and_never_updated(self):
        """A new cache holds no vouchers and no timestamp."""
        snapshot = VoucherCache().snapshot()
        assert snapshot == CacheSnapshot()
        assert snapshot.vouchers == ()
        assert snapshot.updated_at is None

    def test_len_is_zero(self):
        assert len(VoucherCache()) == 0


class TestReplace:
    """Tests for replacing the cached voucher list."""

    def test_sets_vouchers_and_timestamp_together(self, sample_vouchers):
        cache = VoucherCache()
        cache.replace(sample_vouchers, T0)
        snapshot = cache.snapshot()
        assert list(snapshot.vouchers) == sample_vouchers
        assert snapshot.updated_at == T0

    def test_returns_new_snapshot(self, sample_vouchers):
        cache = VoucherCache()
        result = cache.replace(sample_vouchers, T0)
        assert result is cache.snapshot()

    def test_accepts_any_iterable(self, sample_vouchers):
        """Generators should be materialised into a tuple."""
        cache = VoucherCache()
        cache.replace((v for v in sample_vouchers), T0)
        assert isinstance(cache.snapshot().vouchers, tuple)
        assert len(cache) == 2

    def test_replacing_with_empty_list(self, sample_vouchers):
        """An empty controller list should empty the cache but stamp it."""
        cache = VoucherCache()
        cache.replace(sample_vouchers, T0)
        cache.replace([], T0 + timedelta(minutes=1))
        assert cache.snapshot().vouchers == ()
        assert cache.snapshot().updated_at == T0 + timedelta(minutes=1)

    def test_earlier_snapshot_is_not_modified(self, sample_vouchers):
        """Snapshots taken before a replace keep showing the old state."""
        cache = VoucherCache()
        cache.replace(sample_vouchers, T0)
        before = cache.snapshot()
        cache.replace([], T0 + timedelta(minutes=1))
        assert len(before.vouchers) == 2
        assert before.updated_at == T0

    def test_input_list_mutation_does_not_leak(self, sample_vouchers):
        """Mutating the list passed to replace must not change the cache."""
        cache = VoucherCache()
        vouchers = list(sample_vouchers)
        cache.replace(vouchers, T0)
        vouchers.clear()
        assert len(cache) == 2

    def test_timestamp_never_moves_backwards(self, sample_vouchers):
        """An older timestamp keeps the newer one but still replaces vouchers."""
        cache = VoucherCache()
        cache.replace([], T0)
        cache.replace(sample_vouchers, T0 - timedelta(minutes=5))
        snapshot = cache.snapshot()
        assert snapshot.updated_at == T0
        assert len(snapshot.vouchers) == 2


class TestFind:
    """Tests for looking up a cached voucher by id."""

    def test_finds_existing_voucher(self, sample_vouchers):
        cache = VoucherCache()
        cache.replace(sample_vouchers, T0)
        assert cache.find("v2") == sample_vouchers[1]

    def test_missing_voucher_returns_none(self, sample_vouchers):
        cache = VoucherCache()
        cache.replace(sample_vouchers, T0)
        assert cache.find("nope") is None


class TestConcurrentAccess:
    """Readers on other threads must never see a torn snapshot."""

    def test_length_always_matches_timestamp(self):
        """Each write stores n vouchers at T0 + n seconds."""
        cache = VoucherCache()
        stop = threading.Event()
        mismatches = []

        def writer():
            for n in range(1, 400):
                vouchers = [make_voucher(f"{n}-{i}") for i in range(n % 25)]
                cache.replace(vouchers, T0 + timedelta(seconds=n))
            stop.set()

        def reader():
            while not stop.is_set():
                snapshot = cache.snapshot()
                if snapshot.updated_at is None:
                    continue
                n = int((snapshot.updated_at - T0).total_seconds())
                if len(snapshot.vouchers) != n % 25:
                    mismatches.append((n, len(snapshot.vouchers)))
                if any(not v.id.startswith(f"{n}-") for v in snapshot.vouchers):
                    mismatches.append((n, "foreign voucher"))

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        writer_thread.join()
        for thread in readers:
            thread.join()

        assert mismatches == []
        assert cache.snapshot().updated_at == T0 + timedelta(seconds=399)
