"""Decoder for the voucher type configuration string.

The configuration is a compact list of entries separated by ``;``. Each
entry holds up to five ``,`` separated fields in fixed position::

    expiration,usage,upload,download,quota

``expiration`` is in minutes, ``usage`` is ``1`` for single-use vouchers
(anything else is multi-use), and the remaining fields are optional limits
in kb/s, kb/s and megabytes. Empty or omitted optional fields mean "no
limit" and decode to ``None``, never to zero.

Example: ``480,0,,,;1440,1,100,50,1024;`` holds two types.
"""

from typing import List, Optional

from voucher_service.durations import format_duration
from voucher_service.exceptions import ConfigFormatError, UnknownTypeError
from voucher_service.schemas import UsageMode, VoucherTypeDefinition

ENTRY_SEPARATOR = ";"
FIELD_SEPARATOR = ","
FIELDS = ("expiration", "usage", "upload", "download", "quota")


def _split_entries(raw: str) -> List[str]:
    """Split the configuration into entries, dropping trailing empty ones."""
    entries = raw.split(ENTRY_SEPARATOR)
    while entries and not entries[-1].strip():
        entries.pop()
    return entries


def _parse_int(index: int, field: str, value: str, minimum: int = 0) -> int:
    # int() would also accept signs, underscores and non-ASCII digits
    if not (value.isascii() and value.isdigit()):
        raise ConfigFormatError(index, field, value, "not a non-negative integer")
    number = int(value)
    if number < minimum:
        raise ConfigFormatError(
            index, field, value, f"must be greater than or equal to {minimum}"
        )
    return number


def _parse_limit(index: int, field: str, value: str) -> Optional[int]:
    if value == "":
        return None
    return _parse_int(index, field, value)


def _decode_entry(index: int, entry: str) -> VoucherTypeDefinition:
    """Decode a single raw entry found at ``index`` in the configuration."""
    fields = [part.strip() for part in entry.split(FIELD_SEPARATOR)]
    if len(fields) > len(FIELDS):
        raise ConfigFormatError(
            index, "entry", entry, f"expected at most {len(FIELDS)} fields"
        )
    fields += [""] * (len(FIELDS) - len(fields))
    expiration, usage, upload, download, quota = fields

    if expiration == "":
        raise ConfigFormatError(index, "expiration", expiration, "missing value")

    return VoucherTypeDefinition(
        index=index,
        key=entry,
        expiration_minutes=_parse_int(index, "expiration", expiration, minimum=1),
        usage=UsageMode.SINGLE_USE if usage == "1" else UsageMode.MULTI_USE,
        upload_limit_kbps=_parse_limit(index, "upload", upload),
        download_limit_kbps=_parse_limit(index, "download", download),
        quota_megabytes=_parse_limit(index, "quota", quota),
    )


def decode(raw: str) -> List[VoucherTypeDefinition]:
    """Decode the full type configuration into an ordered list of types.

    Args:
        raw: The configuration string.

    Returns:
        Voucher type definitions in configuration order.

    Raises:
        ConfigFormatError: If any entry is malformed, or if the configuration
            holds no entries at all.
    """
    entries = _split_entries(raw)
    if not entries:
        raise ConfigFormatError(0, "entry", raw, "no voucher types configured")
    return [_decode_entry(index, entry) for index, entry in enumerate(entries)]


def decode_one(raw: str, key: str) -> VoucherTypeDefinition:
    """Decode the single entry whose raw text equals ``key``.

    Membership is re-derived from the configuration on every call, so a key
    submitted by an untrusted caller is only accepted when it matches an
    entry verbatim.

    Raises:
        UnknownTypeError: If no entry matches ``key``.
        ConfigFormatError: If the matching entry is malformed.
    """
    for index, entry in enumerate(_split_entries(raw)):
        if entry == key:
            return _decode_entry(index, entry)
    raise UnknownTypeError(key)


def describe_type(definition: VoucherTypeDefinition) -> str:
    """Summarise a type, e.g. ``"8 hours, multi-use, no limits"``."""
    parts = [format_duration(definition.expiration_minutes), definition.usage.value]
    if not definition.has_limits:
        parts.append("no limits")
    if definition.upload_limit_kbps is not None:
        parts.append(f"upload bandwidth limit: {definition.upload_limit_kbps} kb/s")
    if definition.download_limit_kbps is not None:
        parts.append(f"download bandwidth limit: {definition.download_limit_kbps} kb/s")
    if definition.quota_megabytes is not None:
        parts.append(f"quota limit: {definition.quota_megabytes} mb")
    return ", ".join(parts)
