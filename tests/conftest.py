"""Shared test fixtures for the guest voucher service tests.

Provides an in-memory fake controller, the cache/synchronizer/orchestrator
built on top of it, and a FastAPI test client with the service dependencies
overridden to use them.
"""

import pytest
from fastapi.testclient import TestClient

from fakes import SECURITY_CODE, TEST_VOUCHER_TYPES, FakeControllerClient, StepClock, make_voucher
from voucher_service.cache import VoucherCache
from voucher_service.config import Settings
from voucher_service.dependencies import (
    get_cache,
    get_orchestrator,
    get_settings,
    get_synchronizer,
    get_voucher_types,
)
from voucher_service.main import app
from voucher_service.services.lifecycle import VoucherLifecycleOrchestrator
from voucher_service.services.synchronizer import CacheSynchronizer
from voucher_service.voucher_types import decode


@pytest.fixture()
def sample_vouchers():
    """Two vouchers already present on the controller."""
    return [
        make_voucher("v1", code="1111122222", duration_minutes=480, quota_mode=0),
        make_voucher(
            "v2",
            code="3333344444",
            duration_minutes=1440,
            quota_mode=1,
            upload_limit_kbps=100,
            download_limit_kbps=50,
            quota_megabytes=1024,
        ),
    ]


@pytest.fixture()
def fake_client(sample_vouchers):
    return FakeControllerClient(sample_vouchers)


@pytest.fixture()
def cache():
    return VoucherCache()


@pytest.fixture()
def clock():
    return StepClock()


@pytest.fixture()
def synchronizer(fake_client, cache, clock):
    return CacheSynchronizer(fake_client, cache, clock=clock)


@pytest.fixture()
def orchestrator(fake_client, synchronizer):
    return VoucherLifecycleOrchestrator(fake_client, synchronizer, TEST_VOUCHER_TYPES)


@pytest.fixture()
def test_settings():
    """Settings for the test application (periodic sync disabled)."""
    return Settings(
        VOUCHER_TYPES=TEST_VOUCHER_TYPES,
        SECURITY_CODE=SECURITY_CODE,
        DISABLE_AUTH=False,
        SERVICE_API=True,
        AUTO_SYNC_INTERVAL_MINUTES=0,
        _env_file=None,
    )


@pytest.fixture()
def client(test_settings, sample_vouchers, cache, clock, synchronizer, orchestrator):
    """Create a FastAPI test client with the service objects injected.

    The cache starts filled with the sample vouchers, as it would be after
    the startup sync.
    """
    cache.replace(sample_vouchers, clock())
    voucher_types = decode(TEST_VOUCHER_TYPES)

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_synchronizer] = lambda: synchronizer
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_voucher_types] = lambda: voucher_types
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def app_client(test_settings, fake_client, monkeypatch):
    """Create a test client that runs the real lifespan against the fake controller."""
    monkeypatch.setattr("voucher_service.main.settings", test_settings)
    monkeypatch.setattr(
        "voucher_service.main.build_controller_client", lambda config: fake_client
    )
    with TestClient(app) as c:
        yield c
