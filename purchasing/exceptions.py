"""Purchasing errors, part of the inventory error family."""

from typing import Optional

from inventory.exceptions import InventoryError


class InvalidTransitionError(InventoryError):
    """Illegal purchase order state transition; the order is left unchanged."""

    status_code = 409

    def __init__(self, order, target: str, message: Optional[str] = None):
        self.order_id = getattr(order, "id", None)
        self.current = getattr(order, "status", None)
        self.target = target
        super().__init__(message or f"Cannot move purchase order from {self.current} to {target}")


class OverReceiptError(InventoryError):
    """Delivery would push a line's received quantity above the ordered quantity."""

    status_code = 409

    def __init__(self, line, delivered: int):
        self.line_id = line.id
        self.ordered = int(line.quantity)
        self.already_received = int(line.quantity_received)
        self.delivered = delivered
        super().__init__(
            f"Line {line.line_number} ordered {self.ordered}, received {self.already_received}; "
            f"cannot receive {delivered} more"
        )


class CoreChargeError(InventoryError):
    """Core return requested for a line without an outstanding core."""

    status_code = 409
