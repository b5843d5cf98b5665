"""Health check endpoints."""

import socket

from fastapi import APIRouter, Depends

from voucher_service.cache import VoucherCache
from voucher_service.config import Settings
from voucher_service.dependencies import get_cache, get_settings

router = APIRouter(tags=["Health"])


@router.get("/")
def health_check(settings: Settings = Depends(get_settings)):
    """Health check endpoint to verify the service is running."""
    return {"status": "healthy", "service": settings.APP_NAME}


@router.get("/_health")
def cache_health(cache: VoucherCache = Depends(get_cache)):
    """Report the host and the state of the voucher cache."""
    snapshot = cache.snapshot()
    return {
        "status": "UP",
        "host": socket.gethostname(),
        "vouchers": len(snapshot.vouchers),
        "updated_at": snapshot.updated_at.isoformat() if snapshot.updated_at else None,
    }
