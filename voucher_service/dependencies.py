"""FastAPI dependencies exposing the application-wide service objects.

The objects are created once in the application lifespan and stored on
``app.state``. Tests can swap any of them through
``app.dependency_overrides``.
"""

from typing import List, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from voucher_service.cache import VoucherCache
from voucher_service.config import Settings
from voucher_service.schemas import VoucherTypeDefinition
from voucher_service.services.lifecycle import VoucherLifecycleOrchestrator
from voucher_service.services.synchronizer import CacheSynchronizer

_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> VoucherCache:
    return request.app.state.cache


def get_synchronizer(request: Request) -> CacheSynchronizer:
    return request.app.state.synchronizer


def get_orchestrator(request: Request) -> VoucherLifecycleOrchestrator:
    return request.app.state.orchestrator


def get_voucher_types(request: Request) -> List[VoucherTypeDefinition]:
    return request.app.state.voucher_types


def require_api_service(settings: Settings = Depends(get_settings)) -> None:
    """Hide the API endpoints when the API service is disabled."""
    if not settings.SERVICE_API:
        raise HTTPException(status_code=404, detail="API service is disabled.")


def require_api_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> None:
    """Check the ``Authorization: Bearer <security code>`` header.

    Raises:
        HTTPException: 401 when the header is missing, 403 when the code is
            wrong. Skipped entirely when authentication is disabled.
    """
    if settings.DISABLE_AUTH:
        return
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization header. Expected 'Bearer <security code>'.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if credentials.credentials != settings.SECURITY_CODE:
        raise HTTPException(status_code=403, detail="Invalid security code.")
