"""Error taxonomy for the guest voucher service."""


class VoucherServiceError(Exception):
    """Base class for all errors raised by the voucher service."""


class ConfigFormatError(VoucherServiceError):
    """A voucher type configuration entry could not be decoded.

    Attributes:
        index: Position of the offending entry in the configuration.
        field: Name of the offending field ("expiration", "usage", "upload",
               "download", "quota" or "entry" for structural problems).
        value: The raw text that failed to decode.
    """

    def __init__(self, index: int, field: str, value: str, reason: str = "invalid value"):
        self.index = index
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(
            f"Voucher type entry {index}: {reason} for field '{field}': {value!r}"
        )


class UnknownTypeError(VoucherServiceError):
    """A type selector did not match any configured voucher type."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown Type: {key!r}")


class ControllerError(VoucherServiceError):
    """The controller rejected a request or could not be reached.

    ``message`` is a human-readable diagnostic meant to be shown to the user.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SyncError(VoucherServiceError):
    """Refreshing the voucher cache from the controller failed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
