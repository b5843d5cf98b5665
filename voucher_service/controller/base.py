"""Interface of the controller client used by the voucher services."""

from typing import List, Protocol, runtime_checkable

from voucher_service.schemas import VoucherRecord, VoucherTypeDefinition


@runtime_checkable
class ControllerClient(Protocol):
    """Issues, lists and removes vouchers on the wireless controller.

    Every method raises ``ControllerError`` with a human-readable message on
    transport, authentication or validation failures (timeouts included).
    """

    async def create(self, definition: VoucherTypeDefinition, amount: int = 1) -> List[str]:
        """Create ``amount`` vouchers of the given type and return their codes."""
        ...

    async def list(self) -> List[VoucherRecord]:
        """Return every voucher currently known to the controller."""
        ...

    async def remove(self, voucher_id: str) -> bool:
        """Delete a voucher; True when the controller confirmed the deletion."""
        ...

    async def close(self) -> None:
        ...
