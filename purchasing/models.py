from decimal import Decimal

from common.choices import PurchaseOrderStatus, ShipmentStatus
from django.conf import settings
from django.db import models
from inventory.exceptions import money


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class PurchaseOrder(TimeStampedModel):
    """Replenishment order placed with a supplier.

    ``subtotal`` and ``total`` are computed from the lines on every read and
    are never stored.
    """

    STATUS_DRAFT = PurchaseOrderStatus.DRAFT
    STATUS_SUBMITTED = PurchaseOrderStatus.SUBMITTED
    STATUS_ORDERED = PurchaseOrderStatus.ORDERED
    STATUS_SHIPPED = PurchaseOrderStatus.SHIPPED
    STATUS_PARTIALLY_RECEIVED = PurchaseOrderStatus.PARTIALLY_RECEIVED
    STATUS_RECEIVED = PurchaseOrderStatus.RECEIVED
    STATUS_CANCELLED = PurchaseOrderStatus.CANCELLED
    STATUS_CHOICES = PurchaseOrderStatus.choices
    TERMINAL_STATUSES = (STATUS_RECEIVED, STATUS_CANCELLED)

    order_number = models.CharField(max_length=20, unique=True, null=True, blank=True, db_index=True)
    supplier = models.ForeignKey(
        "suppliers.Supplier", null=True, blank=True, related_name="purchase_orders", on_delete=models.SET_NULL
    )
    supplier_name = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    order_date = models.DateField(null=True, blank=True)
    expected_delivery = models.DateField(null=True, blank=True)
    actual_delivery = models.DateField(null=True, blank=True)
    shipping_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tracking_number = models.CharField(max_length=100, blank=True)
    carrier = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )

    class Meta:
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["status", "order_date"]),
        ]
        constraints = [
            models.CheckConstraint(name="po_shipping_non_negative", condition=models.Q(shipping_cost__gte=0)),
            models.CheckConstraint(name="po_tax_non_negative", condition=models.Q(tax__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"PurchaseOrder<{self.order_number}> status={self.status}"

    @property
    def subtotal(self) -> Decimal:
        return money(sum((line.line_total for line in self.lines.all()), Decimal("0.00")))

    @property
    def total(self) -> Decimal:
        return money(self.subtotal + (self.shipping_cost or Decimal("0.00")) + (self.tax or Decimal("0.00")))

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES


class PurchaseOrderLine(TimeStampedModel):
    """Line within a purchase order, with receiving and core charge tracking."""

    order = models.ForeignKey(PurchaseOrder, related_name="lines", on_delete=models.CASCADE)
    line_number = models.PositiveIntegerField()
    part = models.ForeignKey("inventory.Part", related_name="order_lines", on_delete=models.PROTECT)
    description = models.CharField(max_length=200, blank=True)
    quantity = models.PositiveIntegerField()
    unit_cost = models.DecimalField(max_digits=10, decimal_places=2)
    quantity_received = models.PositiveIntegerField(default=0)
    job = models.ForeignKey("jobs.Job", null=True, blank=True, related_name="order_lines", on_delete=models.SET_NULL)

    # Core charge sub-ledger
    has_core = models.BooleanField(default=False)
    core_charge = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    core_returned = models.BooleanField(default=False)
    core_return_date = models.DateField(null=True, blank=True)
    core_tracking = models.CharField(max_length=100, blank=True)
    core_credit_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    class Meta:
        ordering = ["order_id", "line_number"]
        constraints = [
            models.UniqueConstraint(fields=["order", "line_number"], name="unique_po_line_number"),
            models.CheckConstraint(name="po_line_quantity_positive", condition=models.Q(quantity__gt=0)),
            models.CheckConstraint(name="po_line_cost_non_negative", condition=models.Q(unit_cost__gte=0)),
            models.CheckConstraint(
                name="po_line_received_le_quantity",
                condition=models.Q(quantity_received__lte=models.F("quantity")),
            ),
        ]
        indexes = [
            models.Index(fields=["part"]),
            models.Index(fields=["has_core", "core_returned"]),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"POLine#{self.line_number} order={self.order_id} part={self.part_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return money((self.unit_cost or Decimal("0.00")) * Decimal(int(self.quantity)))

    @property
    def quantity_remaining(self) -> int:
        return int(self.quantity) - int(self.quantity_received)

    @property
    def is_fully_received(self) -> bool:
        return int(self.quantity_received) >= int(self.quantity)


class Shipment(TimeStampedModel):
    """Tracking information covering one or more purchase orders."""

    STATUS_CHOICES = ShipmentStatus.choices

    shipment_code = models.CharField(max_length=20, unique=True, null=True, blank=True, db_index=True)
    tracking_number = models.CharField(max_length=100, blank=True, db_index=True)
    tracking_url = models.URLField(blank=True)
    carrier = models.CharField(max_length=50, blank=True)
    supplier_name = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=ShipmentStatus.PENDING, db_index=True)
    ship_date = models.DateField(null=True, blank=True)
    expected_delivery = models.DateField(null=True, blank=True)
    actual_delivery = models.DateField(null=True, blank=True)
    orders = models.ManyToManyField(PurchaseOrder, related_name="shipments", blank=True)

    class Meta:
        ordering = ["-id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Shipment<{self.shipment_code}> {self.carrier} {self.tracking_number}"


class IdempotencyKey(TimeStampedModel):
    """Stores idempotent request results to prevent duplicate processing."""

    key = models.CharField(max_length=128)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.CASCADE)
    scope = models.CharField(max_length=128)
    path = models.CharField(max_length=255)
    method = models.CharField(max_length=16)
    request_hash = models.CharField(max_length=64, null=True, blank=True)
    response_code = models.IntegerField(null=True, blank=True)
    response_json = models.JSONField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["key", "scope", "path", "method"], name="uniq_idem_scope_path_method"),
        ]
