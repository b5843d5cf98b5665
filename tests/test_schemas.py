"""Tests for the pydantic domain schemas."""

import pytest
from pydantic import ValidationError

from fakes import make_voucher
from voucher_service.schemas import UsageMode, VoucherTypeDefinition


class TestVoucherRecord:
    """Tests for the VoucherRecord model."""

    def test_display_code_grouped(self):
        assert make_voucher("v1", code="1234567890").display_code == "12345-67890"

    def test_short_code_not_grouped(self):
        assert make_voucher("v1", code="123").display_code == "123"

    def test_quota_mode_zero_is_multi_use(self):
        assert make_voucher("v1", quota_mode=0).is_multi_use is True
        assert make_voucher("v1", quota_mode=1).is_multi_use is False

    def test_frozen(self):
        record = make_voucher("v1")
        with pytest.raises(ValidationError):
            record.code = "other"


class TestVoucherTypeDefinition:
    """Tests for the VoucherTypeDefinition model."""

    def _definition(self, **kwargs):
        values = dict(index=0, key="60", expiration_minutes=60, usage=UsageMode.MULTI_USE)
        values.update(kwargs)
        return VoucherTypeDefinition(**values)

    def test_has_limits(self):
        assert self._definition().has_limits is False
        assert self._definition(quota_megabytes=0).has_limits is True

    def test_expiration_must_be_positive(self):
        with pytest.raises(ValidationError):
            self._definition(expiration_minutes=0)

    def test_limits_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            self._definition(upload_limit_kbps=-1)
