"""Inventory error taxonomy.

All ledger and planning failures derive from ``InventoryError`` so callers
can catch the family while views map each subclass to a status code.
"""

from decimal import Decimal


class InventoryError(Exception):
    """Base exception for inventory operations."""

    status_code = 400


class PartNotFoundError(InventoryError):
    status_code = 404

    def __init__(self, part_number: str):
        self.part_number = part_number
        super().__init__(f"Part {part_number} not found")


class NegativeQuantityError(InventoryError):
    """Raised when a positive (or non-zero) quantity is required."""


class InsufficientStockError(InventoryError):
    """Raised when requested quantity exceeds available stock."""

    status_code = 409

    def __init__(self, part_number: str, requested: int, available: int):
        self.part_number = part_number
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {part_number}: requested {requested}, available {available}")


class GroupMembershipConflict(InventoryError):
    """Raised when a part already belongs to another cross-reference group."""

    status_code = 409

    def __init__(self, part_numbers):
        self.part_numbers = sorted(part_numbers)
        super().__init__(f"Already in another cross-reference group: {', '.join(self.part_numbers)}")


class MissingPricingError(InventoryError):
    """No active preferred supplier pricing exists for a part.

    Non-fatal: the min-stock planner falls back to a default lead time.
    """

    def __init__(self, part_number: str):
        self.part_number = part_number
        super().__init__(f"No preferred supplier pricing for {part_number}")


def money(value) -> Decimal:
    """Quantize to currency precision."""
    return Decimal(value or 0).quantize(Decimal("0.01"))
