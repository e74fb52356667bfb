"""Purchase order services: lifecycle, receiving and core charges.

Every mutation locks the order row first, then its lines, then (through the
ledger) each part, so lock acquisition order is the same for every writer.
"""

import hashlib
import json
import logging
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from common.choices import ShipmentStatus
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone
from inventory import services as ledger
from inventory.exceptions import NegativeQuantityError, PartNotFoundError, money
from inventory.models import InventoryLayer, Part
from suppliers.selectors import get_preferred_pricing

from .exceptions import CoreChargeError, InvalidTransitionError, OverReceiptError
from .models import IdempotencyKey, PurchaseOrder, PurchaseOrderLine, Shipment

logger = logging.getLogger("fieldparts.purchasing")

PO = PurchaseOrder

ALLOWED_TRANSITIONS = {
    PO.STATUS_DRAFT: {PO.STATUS_SUBMITTED, PO.STATUS_CANCELLED},
    PO.STATUS_SUBMITTED: {PO.STATUS_ORDERED, PO.STATUS_CANCELLED},
    PO.STATUS_ORDERED: {PO.STATUS_SHIPPED, PO.STATUS_PARTIALLY_RECEIVED, PO.STATUS_RECEIVED, PO.STATUS_CANCELLED},
    PO.STATUS_SHIPPED: {PO.STATUS_PARTIALLY_RECEIVED, PO.STATUS_RECEIVED, PO.STATUS_CANCELLED},
    PO.STATUS_PARTIALLY_RECEIVED: {
        PO.STATUS_SHIPPED,
        PO.STATUS_PARTIALLY_RECEIVED,
        PO.STATUS_RECEIVED,
        PO.STATUS_CANCELLED,
    },
    PO.STATUS_RECEIVED: set(),
    PO.STATUS_CANCELLED: set(),
}

RECEIVABLE_STATUSES = (PO.STATUS_ORDERED, PO.STATUS_SHIPPED, PO.STATUS_PARTIALLY_RECEIVED)


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def _lock_order(order) -> PurchaseOrder:
    order_id = getattr(order, "id", order)
    return PurchaseOrder.objects.select_for_update().get(id=order_id)


def _set_status(order: PurchaseOrder, target: str, extra_fields: Iterable[str] = ()) -> PurchaseOrder:
    if not can_transition(order.status, target):
        raise InvalidTransitionError(order, target)
    prev = order.status
    order.status = target
    order.save(update_fields=["status", "updated_at", *extra_fields])
    logger.info(
        "purchase_order_status_changed",
        extra={
            "event": "purchase_order_status_changed",
            "order_id": order.id,
            "order_number": order.order_number,
            "status_from": prev,
            "status_to": target,
        },
    )
    return order


def _require_draft(order: PurchaseOrder, action: str) -> None:
    if order.status != PurchaseOrder.STATUS_DRAFT:
        raise InvalidTransitionError(order, order.status, message=f"Cannot {action}: order is {order.status}")


@transaction.atomic
def create_purchase_order(
    *,
    supplier=None,
    supplier_name: str = "",
    expected_delivery=None,
    notes: str = "",
    created_by=None,
) -> PurchaseOrder:
    """Create an empty Draft order; ``supplier_name`` is snapshotted from the supplier."""

    order = PurchaseOrder.objects.create(
        supplier=supplier,
        supplier_name=supplier_name or getattr(supplier, "name", ""),
        expected_delivery=expected_delivery,
        notes=notes,
        created_by=created_by if getattr(created_by, "id", None) else None,
    )
    order.order_number = f"PO-{int(order.id):04d}"
    order.save(update_fields=["order_number"])
    logger.info(
        "purchasing.order_created",
        extra={"event": "purchasing.order_created", "order_id": order.id, "order_number": order.order_number},
    )
    return order


@transaction.atomic
def add_line(
    order,
    *,
    part_number: str,
    quantity: int,
    unit_cost=None,
    description: str = "",
    job=None,
    has_core: bool = False,
    core_charge=None,
) -> PurchaseOrderLine:
    """Append a line to a Draft order.

    Without an explicit ``unit_cost`` the preferred supplier price is used,
    then the part's average cost.
    """

    order = _lock_order(order)
    _require_draft(order, "add lines")
    if isinstance(quantity, bool) or int(quantity) != quantity or int(quantity) <= 0:
        raise NegativeQuantityError("Quantity must be a positive integer")
    try:
        part = Part.objects.get(part_number=part_number)
    except Part.DoesNotExist:
        raise PartNotFoundError(part_number)

    if unit_cost is None:
        pricing = get_preferred_pricing(part)
        unit_cost = pricing.unit_price if pricing is not None else part.average_cost
    # never purchased and no pricing: cost is filled in before submitting
    unit_cost = Decimal(str(unit_cost)) if unit_cost is not None else Decimal("0.00")
    if unit_cost < 0:
        raise NegativeQuantityError("Unit cost must not be negative")
    if core_charge is not None:
        core_charge = Decimal(str(core_charge))
        if core_charge < 0:
            raise NegativeQuantityError("Core charge must not be negative")
        has_core = True

    last = order.lines.aggregate(last=Max("line_number"))["last"] or 0
    line = PurchaseOrderLine.objects.create(
        order=order,
        line_number=last + 1,
        part=part,
        description=description or part.description,
        quantity=int(quantity),
        unit_cost=money(unit_cost),
        job=job,
        has_core=has_core,
        core_charge=money(core_charge) if core_charge is not None else None,
    )
    logger.info(
        "purchasing.line_added",
        extra={
            "event": "purchasing.line_added",
            "order_id": order.id,
            "line_number": line.line_number,
            "part_number": part.part_number,
            "quantity": line.quantity,
        },
    )
    return line


@transaction.atomic
def remove_line(order, line_id: int) -> PurchaseOrder:
    order = _lock_order(order)
    _require_draft(order, "remove lines")
    deleted, _ = PurchaseOrderLine.objects.filter(order=order, id=line_id).delete()
    if not deleted:
        raise PurchaseOrderLine.DoesNotExist(f"Line {line_id} not found on {order.order_number}")
    return order


@transaction.atomic
def update_line(
    order,
    line_id: int,
    *,
    quantity: Optional[int] = None,
    unit_cost=None,
    description: Optional[str] = None,
    core_charge=None,
) -> PurchaseOrderLine:
    """Edit quantity, cost, description or core charge of a Draft line."""

    order = _lock_order(order)
    _require_draft(order, "edit lines")
    try:
        line = PurchaseOrderLine.objects.select_for_update().get(order=order, id=line_id)
    except PurchaseOrderLine.DoesNotExist:
        raise PurchaseOrderLine.DoesNotExist(f"Line {line_id} not found on {order.order_number}")

    fields = []
    if quantity is not None:
        if isinstance(quantity, bool) or int(quantity) != quantity or int(quantity) <= 0:
            raise NegativeQuantityError("Quantity must be a positive integer")
        line.quantity = int(quantity)
        fields.append("quantity")
    if unit_cost is not None:
        unit_cost = Decimal(str(unit_cost))
        if unit_cost < 0:
            raise NegativeQuantityError("Unit cost must not be negative")
        line.unit_cost = money(unit_cost)
        fields.append("unit_cost")
    if description is not None:
        line.description = description or line.part.description
        fields.append("description")
    if core_charge is not None:
        core_charge = Decimal(str(core_charge))
        if core_charge < 0:
            raise NegativeQuantityError("Core charge must not be negative")
        line.core_charge = money(core_charge)
        line.has_core = True
        fields.extend(["core_charge", "has_core"])
    if fields:
        line.save(update_fields=[*fields, "updated_at"])
        logger.info(
            "purchasing.line_updated",
            extra={
                "event": "purchasing.line_updated",
                "order_id": order.id,
                "line_number": line.line_number,
                "fields": fields,
            },
        )
    return line


@transaction.atomic
def delete_order(order) -> None:
    """Delete a Draft order and its lines; anything past Draft is cancelled instead."""

    order = _lock_order(order)
    _require_draft(order, "delete the order")
    order_id, order_number = order.id, order.order_number
    order.delete()
    logger.info(
        "purchasing.order_deleted",
        extra={"event": "purchasing.order_deleted", "order_id": order_id, "order_number": order_number},
    )


@transaction.atomic
def update_charges(order, *, shipping_cost=None, tax=None) -> PurchaseOrder:
    """Set shipping and tax on a non-terminal order; totals follow on read."""

    order = _lock_order(order)
    if order.is_terminal:
        raise InvalidTransitionError(order, order.status, message=f"Cannot change charges: order is {order.status}")
    fields = []
    for name, value in (("shipping_cost", shipping_cost), ("tax", tax)):
        if value is None:
            continue
        value = Decimal(str(value))
        if value < 0:
            raise NegativeQuantityError(f"{name} must not be negative")
        setattr(order, name, money(value))
        fields.append(name)
    if fields:
        order.save(update_fields=[*fields, "updated_at"])
    return order


@transaction.atomic
def submit(order) -> PurchaseOrder:
    order = _lock_order(order)
    if order.status == PurchaseOrder.STATUS_DRAFT and not order.lines.exists():
        raise InvalidTransitionError(
            order, PurchaseOrder.STATUS_SUBMITTED, message="Cannot submit a purchase order without lines"
        )
    return _set_status(order, PurchaseOrder.STATUS_SUBMITTED)


@transaction.atomic
def mark_ordered(order, *, order_date=None) -> PurchaseOrder:
    order = _lock_order(order)
    if order.status != PurchaseOrder.STATUS_SUBMITTED:
        raise InvalidTransitionError(order, PurchaseOrder.STATUS_ORDERED)
    order.order_date = order_date or timezone.localdate()
    return _set_status(order, PurchaseOrder.STATUS_ORDERED, extra_fields=["order_date"])


@transaction.atomic
def mark_shipped(
    order,
    *,
    tracking_number: str = "",
    carrier: str = "",
    tracking_url: str = "",
    expected_delivery=None,
) -> PurchaseOrder:
    """Move an Ordered (or PartiallyReceived) order to Shipped.

    Tracking details are recorded on the order and on a Shipment linked to it;
    an existing shipment with the same tracking number is reused.
    """

    order = _lock_order(order)
    if order.status not in (PurchaseOrder.STATUS_ORDERED, PurchaseOrder.STATUS_PARTIALLY_RECEIVED):
        raise InvalidTransitionError(order, PurchaseOrder.STATUS_SHIPPED)

    fields = []
    if tracking_number:
        order.tracking_number = tracking_number
        fields.append("tracking_number")
    if carrier:
        order.carrier = carrier
        fields.append("carrier")
    if expected_delivery is not None:
        order.expected_delivery = expected_delivery
        fields.append("expected_delivery")
    _set_status(order, PurchaseOrder.STATUS_SHIPPED, extra_fields=fields)

    if tracking_number:
        shipment = Shipment.objects.filter(tracking_number=tracking_number).first()
        if shipment is None:
            shipment = Shipment.objects.create(
                tracking_number=tracking_number,
                tracking_url=tracking_url,
                carrier=carrier,
                supplier_name=order.supplier_name,
                status=ShipmentStatus.SHIPPED,
                ship_date=timezone.localdate(),
                expected_delivery=expected_delivery or order.expected_delivery,
            )
            shipment.shipment_code = f"SHP-{int(shipment.id):04d}"
            shipment.save(update_fields=["shipment_code"])
        shipment.orders.add(order)
    return order


def _normalize_deliveries(deliveries) -> Dict[int, int]:
    """Accept (line_id, qty) pairs or dicts; repeated lines are summed."""

    merged: Dict[int, int] = OrderedDict()
    for item in deliveries:
        if isinstance(item, dict):
            line_id, qty = item.get("line_id"), item.get("quantity")
        else:
            line_id, qty = item
        if isinstance(qty, bool) or qty is None or int(qty) != qty or int(qty) <= 0:
            raise NegativeQuantityError("Delivered quantity must be a positive integer")
        merged[int(line_id)] = merged.get(int(line_id), 0) + int(qty)
    if not merged:
        raise NegativeQuantityError("At least one delivery is required")
    return merged


@transaction.atomic
def receive(order, deliveries, *, shipment: Optional[Shipment] = None) -> PurchaseOrder:
    """Receive deliveries against order lines.

    Every delivery is validated before any is applied, so a rejected request
    leaves the order, its lines and the ledger untouched. Accepted quantities
    become FIFO layers at the line's unit cost.
    """

    order = _lock_order(order)
    # a received order still reports over-delivery per line
    if order.status not in RECEIVABLE_STATUSES and order.status != PurchaseOrder.STATUS_RECEIVED:
        raise InvalidTransitionError(
            order, PurchaseOrder.STATUS_RECEIVED, message=f"Cannot receive: order is {order.status}"
        )

    merged = _normalize_deliveries(deliveries)
    lines = {
        line.id: line
        for line in PurchaseOrderLine.objects.select_for_update().select_related("part").filter(order=order)
    }
    for line_id, qty in merged.items():
        line = lines.get(line_id)
        if line is None:
            raise PurchaseOrderLine.DoesNotExist(f"Line {line_id} not found on {order.order_number}")
        if qty > line.quantity_remaining:
            raise OverReceiptError(line, qty)
    if order.status == PurchaseOrder.STATUS_RECEIVED:
        raise InvalidTransitionError(
            order, PurchaseOrder.STATUS_RECEIVED, message=f"{order.order_number} is already fully received"
        )

    for line_id, qty in merged.items():
        line = lines[line_id]
        ledger.receive(
            part_number=line.part.part_number,
            quantity=qty,
            unit_cost=line.unit_cost,
            source=InventoryLayer.SOURCE_PURCHASE_ORDER,
            purchase_order=order,
            shipment=shipment,
            reason=f"{order.order_number} line {line.line_number}",
        )
        line.quantity_received = int(line.quantity_received) + qty
        line.save(update_fields=["quantity_received", "updated_at"])

    if all(line.is_fully_received for line in lines.values()):
        order.actual_delivery = timezone.localdate()
        _set_status(order, PurchaseOrder.STATUS_RECEIVED, extra_fields=["actual_delivery"])
        order.shipments.exclude(status=ShipmentStatus.DELIVERED).update(
            status=ShipmentStatus.DELIVERED, actual_delivery=order.actual_delivery
        )
    else:
        _set_status(order, PurchaseOrder.STATUS_PARTIALLY_RECEIVED)
    logger.info(
        "purchasing.received",
        extra={
            "event": "purchasing.received",
            "order_id": order.id,
            "order_number": order.order_number,
            "lines": len(merged),
            "units": sum(merged.values()),
        },
    )
    return order


@transaction.atomic
def cancel(order) -> PurchaseOrder:
    """Cancel a non-terminal order. Stock already received stays on hand."""

    order = _lock_order(order)
    return _set_status(order, PurchaseOrder.STATUS_CANCELLED)


def create_orders_from_alerts(alerts, *, created_by=None) -> List[PurchaseOrder]:
    """Turn replenishment alerts into Draft orders, one per preferred supplier.

    Alerts for parts without preferred pricing land on a single order with no
    supplier. Quantities are raised to the supplier's minimum order quantity.
    """

    buckets: Dict[Optional[int], list] = OrderedDict()
    suppliers = {}
    for alert in alerts:
        part = Part.objects.get(part_number=alert.part_number)
        pricing = get_preferred_pricing(part)
        supplier_id = pricing.supplier_id if pricing is not None else None
        if pricing is not None:
            suppliers[supplier_id] = pricing.supplier
        buckets.setdefault(supplier_id, []).append((alert, part, pricing))

    orders = []
    with transaction.atomic():
        for supplier_id, items in buckets.items():
            order = create_purchase_order(
                supplier=suppliers.get(supplier_id), notes="Created from replenishment alerts", created_by=created_by
            )
            for alert, part, pricing in items:
                quantity = int(alert.recommended_qty)
                if pricing is not None:
                    quantity = max(quantity, int(pricing.min_order_qty or 1))
                add_line(
                    order,
                    part_number=part.part_number,
                    quantity=quantity,
                    unit_cost=pricing.unit_price if pricing is not None else part.average_cost,
                )
            orders.append(order)
    return orders


@transaction.atomic
def mark_core_returned(line_id: int, *, tracking: str = "", credit_amount=None, returned_on=None) -> PurchaseOrderLine:
    """Record the return of a core. Financial only; stock is not touched.

    ``credit_amount`` defaults to the line's core charge.
    """

    line = PurchaseOrderLine.objects.select_for_update().get(id=line_id)
    if not line.has_core:
        raise CoreChargeError(f"Line {line.line_number} has no core charge")
    if line.core_returned:
        raise CoreChargeError(f"Core for line {line.line_number} was already returned")
    if credit_amount is not None:
        credit_amount = Decimal(str(credit_amount))
        if credit_amount < 0:
            raise NegativeQuantityError("Credit amount must not be negative")
    line.core_returned = True
    line.core_return_date = returned_on or timezone.localdate()
    line.core_tracking = tracking
    line.core_credit_amount = money(credit_amount if credit_amount is not None else line.core_charge)
    line.save(
        update_fields=["core_returned", "core_return_date", "core_tracking", "core_credit_amount", "updated_at"]
    )
    logger.info(
        "purchasing.core_returned",
        extra={
            "event": "purchasing.core_returned",
            "line_id": line.id,
            "order_id": line.order_id,
            "credit_amount": str(line.core_credit_amount),
        },
    )
    return line


def _idempotency_ttl_hours() -> int:
    return int(getattr(settings, "PURCHASING_IDEMPOTENCY_TTL_HOURS", 24))


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler once per (key, scope, path, method) and replay its stored response.

    - Scope is "user:<id>" for authenticated callers, otherwise "anon".
    - A stored record with a different ``request_hash`` yields 409.
    - A record without a stored response means another request is in flight: 409.
    """

    scope = f"user:{getattr(user, 'id', None)}" if getattr(user, "id", None) else "anon"
    method = str(method).upper()
    path = str(path)

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user=user if getattr(user, "id", None) else None,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=_idempotency_ttl_hours()),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            return {"detail": "Idempotency key reused with different request payload"}, 409
        if idem.response_json is not None and idem.response_code is not None:
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress"}, 409

    body, code = handler()
    IdempotencyKey.objects.filter(id=idem.id).update(response_json=_json_safe(body), response_code=code)
    return body, code


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """SHA256 of the body serialized with sorted keys; None for an empty body."""

    if not data:
        return None
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def purge_expired_idempotency_keys(now=None) -> int:
    deleted, _ = IdempotencyKey.objects.filter(expires_at__lt=now or timezone.now()).delete()
    return deleted


# EOF
