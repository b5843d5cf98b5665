"""Voucher issuance and revocation.

Every mutation goes through the same steps: validate the input, mutate on
the controller, then refresh the cache. The outcome records where the
request stopped:

* ``REJECTED_INVALID_INPUT``: nothing was sent to the controller.
* ``CONTROLLER_MUTATION_FAILED``: the controller refused or was unreachable.
* ``MUTATED_BUT_REFRESH_FAILED``: the controller applied the change but the
  cache could not be refreshed, so the cached list is stale.
* ``COMPLETED``: mutation and refresh both succeeded.

Errors are returned in the outcome, never raised, so callers can always
render a result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from voucher_service.controller.base import ControllerClient
from voucher_service.exceptions import (
    ConfigFormatError,
    ControllerError,
    SyncError,
    UnknownTypeError,
)
from voucher_service.services.synchronizer import CacheSynchronizer
from voucher_service.voucher_types import decode_one

logger = logging.getLogger(__name__)


class LifecycleStatus(str, Enum):
    REJECTED_INVALID_INPUT = "rejected_invalid_input"
    CONTROLLER_MUTATION_FAILED = "controller_mutation_failed"
    MUTATED_BUT_REFRESH_FAILED = "mutated_but_refresh_failed"
    COMPLETED = "completed"


@dataclass
class LifecycleOutcome:
    """Result of an issue or revoke request.

    Attributes:
        status: Exit state of the request.
        action: "issue" or "revoke".
        codes: Codes of the issued vouchers (issue only).
        error: Why the request was rejected or the mutation failed.
        refresh_error: Why the post-mutation refresh failed.
        unknown_type: True when an issue was rejected for an unknown selector.
    """

    status: LifecycleStatus
    action: str
    codes: List[str] = field(default_factory=list)
    error: Optional[str] = None
    refresh_error: Optional[str] = None
    unknown_type: bool = False

    @property
    def mutated(self) -> bool:
        """Whether the controller applied the change."""
        return self.status in (
            LifecycleStatus.MUTATED_BUT_REFRESH_FAILED,
            LifecycleStatus.COMPLETED,
        )

    @property
    def succeeded(self) -> bool:
        return self.status is LifecycleStatus.COMPLETED

    @property
    def message(self) -> str:
        """Text suitable for showing to the user."""
        if not self.mutated:
            return self.error or "Request failed"
        if self.action == "revoke":
            text = "Voucher Removed!"
        elif len(self.codes) > 1:
            text = f"{len(self.codes)} Vouchers Created!"
        else:
            text = f"Voucher Created: {_group_code(self.codes[0]) if self.codes else ''}"
        if self.refresh_error:
            text += f" (voucher list could not be refreshed: {self.refresh_error})"
        return text


def _group_code(code: str) -> str:
    return f"{code[:5]}-{code[5:]}" if len(code) > 5 else code


class VoucherLifecycleOrchestrator:
    """Issues and revokes vouchers, refreshing the cache after each change."""

    def __init__(
        self,
        client: ControllerClient,
        synchronizer: CacheSynchronizer,
        voucher_types: str,
    ):
        self.client = client
        self.synchronizer = synchronizer
        self.voucher_types = voucher_types

    async def _refresh_after(self, action: str, codes: Optional[List[str]] = None) -> LifecycleOutcome:
        """Refresh the cache after a successful mutation and settle the status."""
        try:
            await self.synchronizer.refresh()
        except SyncError as e:
            logger.warning(
                "[%s] Controller change applied but cache refresh failed: %s",
                action.capitalize(),
                e.message,
            )
            return LifecycleOutcome(
                status=LifecycleStatus.MUTATED_BUT_REFRESH_FAILED,
                action=action,
                codes=list(codes or []),
                refresh_error=e.message,
            )
        return LifecycleOutcome(
            status=LifecycleStatus.COMPLETED,
            action=action,
            codes=list(codes or []),
        )

    async def issue(self, type_selector: str, amount: int = 1) -> LifecycleOutcome:
        """Create ``amount`` vouchers of the type whose key is ``type_selector``.

        The selector is checked against the configured types before anything
        is sent to the controller.
        """
        if amount < 1:
            return LifecycleOutcome(
                status=LifecycleStatus.REJECTED_INVALID_INPUT,
                action="issue",
                error="Amount must be at least 1",
            )

        try:
            definition = decode_one(self.voucher_types, type_selector)
        except UnknownTypeError:
            logger.info("[Issue] Rejected unknown voucher type %r", type_selector)
            return LifecycleOutcome(
                status=LifecycleStatus.REJECTED_INVALID_INPUT,
                action="issue",
                error="Unknown Type!",
                unknown_type=True,
            )
        except ConfigFormatError as e:
            logger.info("[Issue] Rejected malformed voucher type: %s", e)
            return LifecycleOutcome(
                status=LifecycleStatus.REJECTED_INVALID_INPUT,
                action="issue",
                error=str(e),
            )

        try:
            codes = await self.client.create(definition, amount)
        except ControllerError as e:
            logger.error("[Issue] Controller refused voucher creation: %s", e.message)
            return LifecycleOutcome(
                status=LifecycleStatus.CONTROLLER_MUTATION_FAILED,
                action="issue",
                error=e.message,
            )

        logger.info("[Issue] Created %d voucher(s) of type %d", len(codes), definition.index)
        return await self._refresh_after("issue", codes)

    async def revoke(self, voucher_id: str) -> LifecycleOutcome:
        """Remove a voucher from the controller."""
        if not voucher_id:
            return LifecycleOutcome(
                status=LifecycleStatus.REJECTED_INVALID_INPUT,
                action="revoke",
                error="Voucher id is required",
            )

        try:
            removed = await self.client.remove(voucher_id)
        except ControllerError as e:
            logger.error("[Revoke] Controller refused voucher removal: %s", e.message)
            return LifecycleOutcome(
                status=LifecycleStatus.CONTROLLER_MUTATION_FAILED,
                action="revoke",
                error=e.message,
            )
        if not removed:
            return LifecycleOutcome(
                status=LifecycleStatus.CONTROLLER_MUTATION_FAILED,
                action="revoke",
                error="Controller did not confirm voucher removal",
            )

        logger.info("[Revoke] Removed voucher %s", voucher_id)
        return await self._refresh_after("revoke")
