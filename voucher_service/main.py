"""FastAPI application entry point for the UniFi Guest Voucher Service.

This service issues, lists and revokes guest network vouchers on a UniFi
controller. Voucher reads are served from an in-memory cache that is
refreshed after every change, on request, and on a fixed timer.

Run with: uvicorn voucher_service.main:app
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI

from voucher_service.cache import VoucherCache
from voucher_service.config import Settings, settings
from voucher_service.controller.base import ControllerClient
from voucher_service.controller.unifi import UnifiControllerClient
from voucher_service.exceptions import ConfigFormatError, SyncError
from voucher_service.routers.health import router as health_router
from voucher_service.routers.vouchers import router as vouchers_router
from voucher_service.schemas import VoucherTypeDefinition
from voucher_service.services.lifecycle import VoucherLifecycleOrchestrator
from voucher_service.services.synchronizer import CacheSynchronizer
from voucher_service.voucher_types import decode, describe_type

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def load_voucher_types(raw: str) -> List[VoucherTypeDefinition]:
    """Decode the configured voucher types and log each of them.

    Raises:
        ConfigFormatError: If the configuration is malformed. The service
            refuses to start in that case.
    """
    try:
        voucher_types = decode(raw)
    except ConfigFormatError as e:
        logger.critical("[VoucherType] Invalid VOUCHER_TYPES configuration: %s", e)
        raise

    logger.info("[VoucherType] Loaded the following types:")
    for definition in voucher_types:
        logger.info("[VoucherType][%d] %s", definition.index, describe_type(definition))
    return voucher_types


def build_controller_client(config: Settings) -> ControllerClient:
    return UnifiControllerClient(
        base_url=config.unifi_base_url,
        username=config.UNIFI_USERNAME,
        password=config.UNIFI_PASSWORD,
        site=config.UNIFI_SITE_ID,
        verify_ssl=config.UNIFI_VERIFY_SSL,
        timeout=config.UNIFI_TIMEOUT_SECONDS,
        note=config.VOUCHER_NOTE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the services, warm the cache and run the periodic sync."""
    config = settings
    configure_logging(config.LOG_LEVEL)

    voucher_types = load_voucher_types(config.VOUCHER_TYPES)
    logger.info("[Service][Api] %s", "Enabled!" if config.SERVICE_API else "Disabled!")
    logger.info("[Auth] %s", "Disabled!" if config.DISABLE_AUTH else "Enabled!")
    logger.info(
        "[UniFi] Using Controller on: %s:%d (Site ID: %s)",
        config.UNIFI_IP,
        config.UNIFI_PORT,
        config.UNIFI_SITE_ID,
    )

    client = build_controller_client(config)
    cache = VoucherCache()
    synchronizer = CacheSynchronizer(client, cache)

    app.state.settings = config
    app.state.voucher_types = voucher_types
    app.state.cache = cache
    app.state.synchronizer = synchronizer
    app.state.orchestrator = VoucherLifecycleOrchestrator(
        client, synchronizer, config.VOUCHER_TYPES
    )

    try:
        await synchronizer.refresh()
    except SyncError:
        logger.warning("[Cache] Initial sync failed, starting with an empty cache")

    sync_task = None
    if config.AUTO_SYNC_INTERVAL_MINUTES > 0:
        sync_task = asyncio.create_task(
            synchronizer.run_periodic(config.AUTO_SYNC_INTERVAL_MINUTES * 60)
        )

    try:
        yield
    finally:
        if sync_task is not None:
            sync_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sync_task
        await client.close()


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Issues, lists and revokes guest WiFi vouchers on a UniFi controller. "
        "Voucher listings are served from a local cache kept in sync with the "
        "controller."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(vouchers_router)
