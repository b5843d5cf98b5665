"""Pydantic schemas for domain records, API requests and responses."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UsageMode(str, Enum):
    """Whether a voucher expires after one redemption or stays valid."""

    SINGLE_USE = "single-use"
    MULTI_USE = "multi-use"


class VoucherTypeDefinition(BaseModel):
    """One voucher type decoded from the type configuration string."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Position within the configuration")
    key: str = Field(..., description="Raw configuration entry, used as selector")
    expiration_minutes: int = Field(..., ge=1, description="Validity window in minutes")
    usage: UsageMode = Field(..., description="Single-use or multi-use")
    upload_limit_kbps: Optional[int] = Field(
        None, ge=0, description="Upload bandwidth limit in kb/s, None when unset"
    )
    download_limit_kbps: Optional[int] = Field(
        None, ge=0, description="Download bandwidth limit in kb/s, None when unset"
    )
    quota_megabytes: Optional[int] = Field(
        None, ge=0, description="Data quota in megabytes, None when unset"
    )

    @property
    def has_limits(self) -> bool:
        return not (
            self.upload_limit_kbps is None
            and self.download_limit_kbps is None
            and self.quota_megabytes is None
        )


class VoucherRecord(BaseModel):
    """A voucher as issued by the controller, normalized.

    Attributes:
        id: Controller-assigned identifier.
        code: Voucher code without grouping separators.
        duration_minutes: Validity window in minutes.
        quota_mode: 0 for multi-use, anything else single-use (controller
                    convention: the number of allowed redemptions).
        upload_limit_kbps: Upload bandwidth limit, None when unlimited.
        download_limit_kbps: Download bandwidth limit, None when unlimited.
        quota_megabytes: Data quota, None when unlimited.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    duration_minutes: int
    quota_mode: int = 0
    upload_limit_kbps: Optional[int] = None
    download_limit_kbps: Optional[int] = None
    quota_megabytes: Optional[int] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    status: Optional[str] = None

    @property
    def is_multi_use(self) -> bool:
        return self.quota_mode == 0

    @property
    def display_code(self) -> str:
        """Code grouped for display, e.g. ``12345-67890``."""
        if len(self.code) <= 5:
            return self.code
        return f"{self.code[:5]}-{self.code[5:]}"


class VoucherTypeEntry(BaseModel):
    """A voucher type as exposed by the API."""

    index: int
    key: str
    expiration_minutes: int
    duration: str = Field(..., description="Human readable validity window")
    usage: UsageMode
    upload_limit_kbps: Optional[int] = None
    download_limit_kbps: Optional[int] = None
    quota_megabytes: Optional[int] = None


class VoucherEntry(BaseModel):
    """A cached voucher as exposed by the API."""

    id: str
    code: str
    display_code: str
    duration_minutes: int
    duration: str
    usage: UsageMode
    upload_limit_kbps: Optional[int] = None
    download_limit_kbps: Optional[int] = None
    quota_megabytes: Optional[int] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    status: Optional[str] = None


class IssueRequest(BaseModel):
    """Request body for issuing vouchers."""

    type: str = Field(..., min_length=1, description="Voucher type key from /api/types")
    amount: int = Field(1, description="Number of vouchers to create")


class ApiResponse(BaseModel):
    """Response envelope shared by every API endpoint."""

    error: Optional[str] = Field(None, description="Error message, null on success")
    data: Dict[str, Any] = Field(default_factory=dict)


class VoucherListData(BaseModel):
    """Payload for the voucher listing endpoint."""

    message: str = "OK"
    updated_at: Optional[datetime] = None
    vouchers: List[VoucherEntry] = Field(default_factory=list)
