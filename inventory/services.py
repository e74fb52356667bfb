"""Inventory services: FIFO ledger mutations and cross-reference groups.

Every mutation runs in a transaction holding a row lock on the Part, so two
writers can never draw from the same layer state.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from .exceptions import (
    GroupMembershipConflict,
    InsufficientStockError,
    InventoryError,
    NegativeQuantityError,
    PartNotFoundError,
    money,
)
from .models import CrossReferenceGroup, InventoryLayer, Part, StockTransaction

logger = logging.getLogger("fieldparts.inventory")


@dataclass
class LayerDraw:
    layer_id: int
    received_at: object
    quantity: int
    unit_cost: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_cost * self.quantity


@dataclass
class CostBreakdown:
    """Cost of a FIFO draw: which layers were touched and at what cost."""

    part_number: str
    quantity: int
    draws: List[LayerDraw] = field(default_factory=list)
    transaction: Optional[StockTransaction] = None

    @property
    def total_cost(self) -> Decimal:
        return money(sum((d.subtotal for d in self.draws), Decimal("0")))

    @property
    def average_unit_cost(self) -> Decimal:
        if not self.quantity:
            return Decimal("0.00")
        return money(sum((d.subtotal for d in self.draws), Decimal("0")) / self.quantity)


def _require_positive(quantity, label: str = "Quantity") -> int:
    if isinstance(quantity, bool) or int(quantity) != quantity or int(quantity) <= 0:
        raise NegativeQuantityError(f"{label} must be a positive integer")
    return int(quantity)


def _lock_part(part_number: str) -> Part:
    try:
        return Part.objects.select_for_update().get(part_number=part_number)
    except Part.DoesNotExist:
        raise PartNotFoundError(part_number)


def _refresh_costs(part: Part) -> None:
    """Recompute average cost over all purchased layers and derive sell price.

    Zero-cost adjustment layers are excluded so count corrections do not
    dilute the valuation.
    """

    purchased = part.layers.exclude(source=InventoryLayer.SOURCE_ADJUSTMENT)
    rows = list(purchased.values_list("quantity_received", "unit_cost"))
    total_qty = sum(int(qty) for qty, _ in rows)
    if total_qty == 0:
        return
    total_cost = sum((Decimal(int(qty)) * cost for qty, cost in rows), Decimal("0"))
    part.average_cost = money(total_cost / total_qty)
    markup = Decimal(part.markup_percent or 0)
    part.sell_price = money(part.average_cost * (1 + markup / Decimal("100")))


def _draw_fifo(part: Part, quantity: int) -> List[LayerDraw]:
    """Deduct ``quantity`` from the part's layers, oldest first.

    Checks availability before touching any layer; the caller's transaction
    rolls back on any later failure.
    """

    layers = list(
        InventoryLayer.objects.select_for_update()
        .filter(part=part, quantity_remaining__gt=0)
        .order_by("received_at", "id")
    )
    available = sum(int(layer.quantity_remaining) for layer in layers)
    if available < quantity:
        raise InsufficientStockError(part.part_number, quantity, available)

    draws = []
    remaining = quantity
    for layer in layers:
        if remaining == 0:
            break
        take = min(remaining, int(layer.quantity_remaining))
        layer.quantity_remaining = int(layer.quantity_remaining) - take
        layer.save(update_fields=["quantity_remaining", "updated_at"])
        draws.append(
            LayerDraw(layer_id=layer.id, received_at=layer.received_at, quantity=take, unit_cost=layer.unit_cost)
        )
        remaining -= take
    return draws


def register_part(*, part_number: str, description: str = "", **fields) -> Part:
    """Return the part with this number, creating it on first registration."""

    part_number = str(part_number).strip().upper()
    if not part_number:
        raise InventoryError("Part number is required")
    part, created = Part.objects.get_or_create(
        part_number=part_number, defaults={"description": description, **fields}
    )
    if created:
        logger.info(
            "inventory.part_registered",
            extra={"event": "inventory.part_registered", "part_number": part_number},
        )
    return part


@transaction.atomic
def receive(
    *,
    part_number: str,
    quantity: int,
    unit_cost,
    source: str = InventoryLayer.SOURCE_MANUAL,
    purchase_order=None,
    shipment=None,
    reason: str = "",
) -> InventoryLayer:
    """Append a cost layer for newly received stock.

    Receiving is authoritative: it always creates stock.
    """

    quantity = _require_positive(quantity)
    unit_cost = Decimal(str(unit_cost))
    if unit_cost < 0:
        raise NegativeQuantityError("Unit cost must not be negative")

    part = _lock_part(part_number)
    layer = InventoryLayer.objects.create(
        part=part,
        quantity_received=quantity,
        quantity_remaining=quantity,
        unit_cost=money(unit_cost),
        received_at=timezone.now(),
        source=source,
        purchase_order=purchase_order,
    )
    part.current_stock = int(part.current_stock) + quantity
    _refresh_costs(part)
    part.save(update_fields=["current_stock", "average_cost", "sell_price", "updated_at"])
    StockTransaction.objects.create(
        part=part,
        transaction_type=StockTransaction.TYPE_RECEIVED,
        quantity=quantity,
        unit_cost=layer.unit_cost,
        total_cost=money(layer.unit_cost * quantity),
        purchase_order=purchase_order,
        shipment=shipment,
        layer=layer,
        reason=reason,
    )
    logger.info(
        "inventory.received",
        extra={
            "event": "inventory.received",
            "part_number": part.part_number,
            "quantity": quantity,
            "unit_cost": str(layer.unit_cost),
            "source": source,
            "purchase_order_id": getattr(purchase_order, "id", None),
        },
    )
    return layer


@transaction.atomic
def consume(*, part_number: str, quantity: int, job=None, reason: str = "") -> CostBreakdown:
    """Use stock for a job, costing it against the oldest layers first.

    All-or-nothing: raises InsufficientStockError without touching any layer
    when less than ``quantity`` is on hand.
    """

    quantity = _require_positive(quantity)
    part = _lock_part(part_number)
    draws = _draw_fifo(part, quantity)
    breakdown = CostBreakdown(part_number=part.part_number, quantity=quantity, draws=draws)

    now = timezone.now()
    part.current_stock = int(part.current_stock) - quantity
    part.times_used = int(part.times_used) + 1
    part.last_used_at = now
    if part.first_used_at is None:
        part.first_used_at = now
    part.save(update_fields=["current_stock", "times_used", "last_used_at", "first_used_at", "updated_at"])

    breakdown.transaction = StockTransaction.objects.create(
        part=part,
        transaction_type=StockTransaction.TYPE_USED,
        quantity=-quantity,
        unit_cost=breakdown.average_unit_cost,
        total_cost=breakdown.total_cost,
        job=job,
        reason=reason,
    )
    logger.info(
        "inventory.consumed",
        extra={
            "event": "inventory.consumed",
            "part_number": part.part_number,
            "quantity": quantity,
            "total_cost": str(breakdown.total_cost),
            "layers": len(draws),
            "job_id": getattr(job, "id", None),
        },
    )
    return breakdown


@transaction.atomic
def adjust(*, part_number: str, delta: int, reason: str) -> StockTransaction:
    """Manual stock correction (shrinkage, count corrections).

    Positive deltas add a zero-cost adjustment layer; negative deltas draw
    layers FIFO and may bring stock to zero but never below.
    """

    if isinstance(delta, bool) or int(delta) != delta or int(delta) == 0:
        raise NegativeQuantityError("Adjustment delta must be a non-zero integer")
    delta = int(delta)
    part = _lock_part(part_number)

    if delta > 0:
        layer = InventoryLayer.objects.create(
            part=part,
            quantity_received=delta,
            quantity_remaining=delta,
            unit_cost=Decimal("0.00"),
            received_at=timezone.now(),
            source=InventoryLayer.SOURCE_ADJUSTMENT,
        )
        unit_cost = total_cost = Decimal("0.00")
    else:
        layer = None
        breakdown = CostBreakdown(part_number=part.part_number, quantity=-delta, draws=_draw_fifo(part, -delta))
        unit_cost, total_cost = breakdown.average_unit_cost, breakdown.total_cost

    part.current_stock = int(part.current_stock) + delta
    part.save(update_fields=["current_stock", "updated_at"])
    tx = StockTransaction.objects.create(
        part=part,
        transaction_type=StockTransaction.TYPE_ADJUSTED,
        quantity=delta,
        unit_cost=unit_cost,
        total_cost=total_cost,
        layer=layer,
        reason=reason,
    )
    logger.info(
        "inventory.adjusted",
        extra={"event": "inventory.adjusted", "part_number": part.part_number, "delta": delta, "reason": reason},
    )
    return tx


@transaction.atomic
def transfer(
    *,
    part_number: str,
    quantity: int,
    to_location,
    from_location=None,
    reason: str = "",
) -> StockTransaction:
    """Move a part to another storage location.

    Location is a single attribute of the part; cost layers are untouched.
    """

    quantity = _require_positive(quantity)
    part = _lock_part(part_number)
    if quantity > int(part.current_stock):
        raise InsufficientStockError(part.part_number, quantity, int(part.current_stock))
    if from_location is None:
        from_location = part.storage_location

    part.storage_location = to_location
    part.save(update_fields=["storage_location", "updated_at"])
    tx = StockTransaction.objects.create(
        part=part,
        transaction_type=StockTransaction.TYPE_TRANSFERRED,
        quantity=0,
        from_location=from_location,
        to_location=to_location,
        reason=reason or f"Transferred {quantity}",
    )
    logger.info(
        "inventory.transferred",
        extra={
            "event": "inventory.transferred",
            "part_number": part.part_number,
            "quantity": quantity,
            "from_location_id": getattr(from_location, "id", None),
            "to_location_id": getattr(to_location, "id", None),
        },
    )
    return tx


def estimate_fifo_cost(*, part_number: str, quantity: int) -> CostBreakdown:
    """Preview what consuming ``quantity`` would cost, without mutating layers."""

    quantity = _require_positive(quantity)
    try:
        part = Part.objects.get(part_number=part_number)
    except Part.DoesNotExist:
        raise PartNotFoundError(part_number)
    draws = []
    remaining = quantity
    for layer in part.layers.filter(quantity_remaining__gt=0).order_by("received_at", "id"):
        if remaining == 0:
            break
        take = min(remaining, int(layer.quantity_remaining))
        draws.append(
            LayerDraw(layer_id=layer.id, received_at=layer.received_at, quantity=take, unit_cost=layer.unit_cost)
        )
        remaining -= take
    if remaining:
        raise InsufficientStockError(part.part_number, quantity, quantity - remaining)
    return CostBreakdown(part_number=part.part_number, quantity=quantity, draws=draws)


# Cross-reference groups
def _lock_parts(part_numbers: Iterable[str]) -> List[Part]:
    wanted = {str(p).strip() for p in part_numbers}
    parts = list(Part.objects.select_for_update().filter(part_number__in=wanted).order_by("id"))
    missing = wanted - {p.part_number for p in parts}
    if missing:
        raise PartNotFoundError(sorted(missing)[0])
    return parts


@transaction.atomic
def create_group(
    *,
    part_numbers: Iterable[str],
    description: str,
    min_stock_group: int = 1,
    auto_replenish: bool = True,
) -> CrossReferenceGroup:
    """Create a group of interchangeable parts.

    Rejects the whole request if any part already belongs to a group.
    """

    if int(min_stock_group) < 0:
        raise NegativeQuantityError("Group minimum stock must not be negative")
    parts = _lock_parts(part_numbers)
    conflicts = [p.part_number for p in parts if p.xref_group_id is not None]
    if conflicts:
        raise GroupMembershipConflict(conflicts)

    group = CrossReferenceGroup.objects.create(
        description=description, min_stock_group=int(min_stock_group), auto_replenish=auto_replenish
    )
    group.group_code = f"XREF-{int(group.id):04d}"
    group.save(update_fields=["group_code"])
    Part.objects.filter(id__in=[p.id for p in parts]).update(xref_group=group, updated_at=timezone.now())
    logger.info(
        "inventory.group_created",
        extra={
            "event": "inventory.group_created",
            "group_code": group.group_code,
            "part_numbers": sorted(p.part_number for p in parts),
        },
    )
    return group


@transaction.atomic
def add_group_member(*, group_id: int, part_number: str) -> CrossReferenceGroup:
    """Add a part to a group; parts in another group are rejected."""

    group = CrossReferenceGroup.objects.select_for_update().get(id=group_id)
    part = _lock_part(part_number)
    if part.xref_group_id == group.id:
        return group
    if part.xref_group_id is not None:
        raise GroupMembershipConflict([part.part_number])
    part.xref_group = group
    part.save(update_fields=["xref_group", "updated_at"])
    logger.info(
        "inventory.group_member_added",
        extra={"event": "inventory.group_member_added", "group_code": group.group_code, "part_number": part_number},
    )
    return group


@transaction.atomic
def remove_group_member(*, group_id: int, part_number: str) -> CrossReferenceGroup:
    group = CrossReferenceGroup.objects.select_for_update().get(id=group_id)
    part = _lock_part(part_number)
    if part.xref_group_id != group.id:
        return group
    part.xref_group = None
    part.save(update_fields=["xref_group", "updated_at"])
    logger.info(
        "inventory.group_member_removed",
        extra={"event": "inventory.group_member_removed", "group_code": group.group_code, "part_number": part_number},
    )
    return group


# EOF
