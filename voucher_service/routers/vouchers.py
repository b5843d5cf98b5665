"""Voucher API endpoints.

Provides endpoints for:
- Listing the configured voucher types
- Listing cached vouchers and syncing them from the controller
- Issuing and revoking vouchers

Every response uses the ``{"error": ..., "data": {...}}`` envelope. Reads
are always served from the cache; only an explicit refresh or a mutation
talks to the controller.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from voucher_service.cache import VoucherCache
from voucher_service.dependencies import (
    get_cache,
    get_orchestrator,
    get_synchronizer,
    get_voucher_types,
    require_api_auth,
    require_api_service,
)
from voucher_service.durations import format_duration
from voucher_service.exceptions import SyncError
from voucher_service.schemas import (
    ApiResponse,
    IssueRequest,
    UsageMode,
    VoucherEntry,
    VoucherListData,
    VoucherRecord,
    VoucherTypeDefinition,
    VoucherTypeEntry,
)
from voucher_service.services.lifecycle import (
    LifecycleOutcome,
    LifecycleStatus,
    VoucherLifecycleOrchestrator,
)
from voucher_service.services.synchronizer import CacheSynchronizer

router = APIRouter(
    prefix="/api", tags=["Vouchers"], dependencies=[Depends(require_api_service)]
)

ENDPOINTS = [
    "/api",
    "/api/types",
    "/api/vouchers",
    "/api/vouchers/sync",
    "/api/vouchers/{id}",
    "/api/voucher/{type}",
]


def _envelope(status_code: int, error: Optional[str] = None, data: Optional[dict] = None) -> JSONResponse:
    body = ApiResponse(error=error, data=data or {})
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _type_entry(definition: VoucherTypeDefinition) -> VoucherTypeEntry:
    return VoucherTypeEntry(
        index=definition.index,
        key=definition.key,
        expiration_minutes=definition.expiration_minutes,
        duration=format_duration(definition.expiration_minutes),
        usage=definition.usage,
        upload_limit_kbps=definition.upload_limit_kbps,
        download_limit_kbps=definition.download_limit_kbps,
        quota_megabytes=definition.quota_megabytes,
    )


def _voucher_entry(record: VoucherRecord) -> VoucherEntry:
    return VoucherEntry(
        id=record.id,
        code=record.code,
        display_code=record.display_code,
        duration_minutes=record.duration_minutes,
        duration=format_duration(record.duration_minutes),
        usage=UsageMode.MULTI_USE if record.is_multi_use else UsageMode.SINGLE_USE,
        upload_limit_kbps=record.upload_limit_kbps,
        download_limit_kbps=record.download_limit_kbps,
        quota_megabytes=record.quota_megabytes,
        note=record.note,
        created_at=record.created_at,
        status=record.status,
    )


def _list_response(cache: VoucherCache, message: str = "OK") -> JSONResponse:
    snapshot = cache.snapshot()
    data = VoucherListData(
        message=message,
        updated_at=snapshot.updated_at,
        vouchers=[_voucher_entry(v) for v in snapshot.vouchers],
    )
    return _envelope(200, data=data.model_dump(mode="json"))


def _outcome_response(outcome: LifecycleOutcome) -> JSONResponse:
    """Map a lifecycle outcome onto an HTTP status and envelope."""
    data = {"status": outcome.status.value, "message": outcome.message}
    if outcome.action == "issue":
        data["vouchers"] = outcome.codes
        if outcome.codes:
            data["voucher"] = outcome.codes[0]

    if outcome.status is LifecycleStatus.REJECTED_INVALID_INPUT:
        return _envelope(404 if outcome.unknown_type else 400, error=outcome.error, data=data)
    if outcome.status is LifecycleStatus.CONTROLLER_MUTATION_FAILED:
        return _envelope(502, error=outcome.error, data=data)
    if outcome.status is LifecycleStatus.MUTATED_BUT_REFRESH_FAILED:
        data["refresh_error"] = outcome.refresh_error
    return _envelope(200, data=data)


@router.get("", summary="List API endpoints", response_model=ApiResponse)
def api_index():
    """Return the available API endpoints."""
    return _envelope(200, data={"message": "OK", "endpoints": ENDPOINTS})


@router.get(
    "/types",
    summary="List voucher types",
    description="Returns the voucher types decoded from the VOUCHER_TYPES configuration.",
    response_model=ApiResponse,
)
def list_types(voucher_types: List[VoucherTypeDefinition] = Depends(get_voucher_types)):
    """List the configured voucher types with their selector keys."""
    types = [_type_entry(t).model_dump(mode="json") for t in voucher_types]
    return _envelope(200, data={"message": "OK", "types": types})


@router.get(
    "/vouchers",
    summary="List cached vouchers",
    description=(
        "Returns the vouchers from the local cache together with the time of "
        "the last successful sync. Pass refresh=true to sync with the "
        "controller first."
    ),
    response_model=ApiResponse,
    dependencies=[Depends(require_api_auth)],
    responses={502: {"model": ApiResponse, "description": "Controller unreachable"}},
)
async def list_vouchers(
    refresh: bool = Query(False, description="Sync with the controller before listing"),
    cache: VoucherCache = Depends(get_cache),
    synchronizer: CacheSynchronizer = Depends(get_synchronizer),
):
    """List vouchers from the cache, optionally syncing first."""
    if refresh:
        try:
            await synchronizer.refresh()
        except SyncError as e:
            return _envelope(502, error=e.message)
        return _list_response(cache, message="Synced Vouchers!")
    return _list_response(cache)


@router.post(
    "/vouchers/sync",
    summary="Sync vouchers with the controller",
    response_model=ApiResponse,
    dependencies=[Depends(require_api_auth)],
    responses={502: {"model": ApiResponse, "description": "Controller unreachable"}},
)
async def sync_vouchers(synchronizer: CacheSynchronizer = Depends(get_synchronizer)):
    """Refresh the cache from the controller and report the voucher count."""
    try:
        count = await synchronizer.refresh()
    except SyncError as e:
        return _envelope(502, error=e.message)
    updated_at = synchronizer.cache.snapshot().updated_at
    return _envelope(
        200,
        data={
            "message": "Synced Vouchers!",
            "count": count,
            "updated_at": updated_at.isoformat() if updated_at else None,
        },
    )


@router.post(
    "/vouchers",
    summary="Issue vouchers",
    description=(
        "Creates vouchers of the given type on the controller, then refreshes "
        "the cache. A 200 response with status 'mutated_but_refresh_failed' "
        "means the vouchers exist but the cached list is stale."
    ),
    response_model=ApiResponse,
    dependencies=[Depends(require_api_auth)],
    responses={
        400: {"model": ApiResponse, "description": "Invalid amount or malformed type"},
        404: {"model": ApiResponse, "description": "Unknown voucher type"},
        502: {"model": ApiResponse, "description": "Controller refused the request"},
    },
)
async def issue_vouchers(
    body: IssueRequest,
    orchestrator: VoucherLifecycleOrchestrator = Depends(get_orchestrator),
):
    """Issue one or more vouchers of a configured type."""
    outcome = await orchestrator.issue(body.type, body.amount)
    return _outcome_response(outcome)


@router.get(
    "/voucher/{type}",
    summary="Issue a single voucher",
    description="Creates one voucher of the given type key.",
    response_model=ApiResponse,
    dependencies=[Depends(require_api_auth)],
)
async def issue_single_voucher(
    type: str,
    orchestrator: VoucherLifecycleOrchestrator = Depends(get_orchestrator),
):
    """Issue a single voucher of the type whose key is in the path."""
    outcome = await orchestrator.issue(type, 1)
    return _outcome_response(outcome)


@router.delete(
    "/vouchers/{voucher_id}",
    summary="Revoke a voucher",
    response_model=ApiResponse,
    dependencies=[Depends(require_api_auth)],
    responses={502: {"model": ApiResponse, "description": "Controller refused the request"}},
)
async def revoke_voucher(
    voucher_id: str,
    orchestrator: VoucherLifecycleOrchestrator = Depends(get_orchestrator),
):
    """Remove a voucher from the controller and refresh the cache."""
    outcome = await orchestrator.revoke(voucher_id)
    return _outcome_response(outcome)
