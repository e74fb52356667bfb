"""Inventory models: parts, FIFO cost layers, and the movement ledger.

Stock is valued per part number. Each receipt appends an ``InventoryLayer``;
consumption draws layers oldest first. ``Part.current_stock`` is maintained
in the same transaction as the layers it summarizes.
"""

from decimal import Decimal

from common.choices import LayerSource, TransactionType
from django.db import models
from django.db.models import Sum


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class CrossReferenceGroup(TimeStampedModel):
    """Set of interchangeable parts whose stock is tracked in aggregate.

    Membership is the ``Part.xref_group`` foreign key, so a part can belong to
    at most one group. Combined stock is never stored.
    """

    group_code = models.CharField(max_length=20, unique=True, null=True, blank=True, db_index=True)
    description = models.TextField()
    min_stock_group = models.PositiveIntegerField(default=1)
    auto_replenish = models.BooleanField(default=True)

    class Meta:
        ordering = ["group_code"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.group_code} {self.description}"

    @property
    def combined_stock(self) -> int:
        return int(self.members.aggregate(total=Sum("current_stock"))["total"] or 0)

    @property
    def is_below_minimum(self) -> bool:
        return self.combined_stock <= int(self.min_stock_group)


class Part(TimeStampedModel):
    part_number = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    brand = models.CharField(max_length=100, blank=True)

    average_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    markup_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("20.00"))
    sell_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Maintained by the ledger services; equals the sum of layer remainders.
    current_stock = models.IntegerField(default=0)
    min_stock = models.PositiveIntegerField(null=True, blank=True)
    min_stock_override = models.PositiveIntegerField(null=True, blank=True)
    min_stock_override_reason = models.CharField(max_length=200, blank=True)
    auto_replenish = models.BooleanField(default=False)
    stocking_score = models.DecimalField(max_digits=4, decimal_places=2, default=Decimal("0.00"))

    times_used = models.PositiveIntegerField(default=0)
    first_used_at = models.DateTimeField(null=True, blank=True)
    last_used_at = models.DateTimeField(null=True, blank=True)

    xref_group = models.ForeignKey(
        CrossReferenceGroup, null=True, blank=True, related_name="members", on_delete=models.SET_NULL
    )
    storage_location = models.ForeignKey(
        "locations.StorageLocation", null=True, blank=True, related_name="parts", on_delete=models.SET_NULL
    )
    location_notes = models.CharField(max_length=200, blank=True)

    class Meta:
        ordering = ["part_number"]
        constraints = [
            models.CheckConstraint(name="part_stock_non_negative", condition=models.Q(current_stock__gte=0)),
            models.CheckConstraint(
                name="part_score_in_range",
                condition=models.Q(stocking_score__gte=0) & models.Q(stocking_score__lte=10),
            ),
        ]
        indexes = [
            models.Index(fields=["auto_replenish"]),
            models.Index(fields=["category"]),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Part<{self.part_number}> stock={self.current_stock}"

    @property
    def effective_min_stock(self) -> int:
        return max(int(self.min_stock_override or 0), int(self.min_stock or 0))


class InventoryLayer(TimeStampedModel):
    """A single receipt of stock at one unit cost.

    Exhausted layers (``quantity_remaining == 0``) are kept for audit.
    """

    SOURCE_PURCHASE_ORDER = LayerSource.PURCHASE_ORDER
    SOURCE_MANUAL = LayerSource.MANUAL
    SOURCE_ADJUSTMENT = LayerSource.ADJUSTMENT
    SOURCE_CHOICES = LayerSource.choices

    part = models.ForeignKey(Part, related_name="layers", on_delete=models.PROTECT)
    quantity_received = models.PositiveIntegerField()
    quantity_remaining = models.PositiveIntegerField()
    unit_cost = models.DecimalField(max_digits=10, decimal_places=2)
    received_at = models.DateTimeField()
    source = models.CharField(max_length=16, choices=SOURCE_CHOICES)
    purchase_order = models.ForeignKey(
        "purchasing.PurchaseOrder", null=True, blank=True, related_name="layers", on_delete=models.SET_NULL
    )

    class Meta:
        # FIFO order
        ordering = ["received_at", "id"]
        constraints = [
            models.CheckConstraint(
                name="layer_remaining_le_received",
                condition=models.Q(quantity_remaining__lte=models.F("quantity_received")),
            ),
            models.CheckConstraint(name="layer_cost_non_negative", condition=models.Q(unit_cost__gte=0)),
        ]
        indexes = [
            models.Index(fields=["part", "received_at"]),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Layer<{self.part_id}> {self.quantity_remaining}/{self.quantity_received} @ {self.unit_cost}"


class StockTransaction(models.Model):
    """Immutable audit record of a stock movement.

    ``quantity`` is signed: positive for receipts, negative for consumption,
    zero for transfers (location change only).
    """

    TYPE_RECEIVED = TransactionType.RECEIVED
    TYPE_USED = TransactionType.USED
    TYPE_TRANSFERRED = TransactionType.TRANSFERRED
    TYPE_ADJUSTED = TransactionType.ADJUSTED
    TYPE_CHOICES = TransactionType.choices

    part = models.ForeignKey(Part, related_name="transactions", on_delete=models.PROTECT)
    transaction_type = models.CharField(max_length=16, choices=TYPE_CHOICES, db_index=True)
    quantity = models.IntegerField()
    unit_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    total_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    reason = models.CharField(max_length=200, blank=True)

    job = models.ForeignKey(
        "jobs.Job", null=True, blank=True, related_name="stock_transactions", on_delete=models.SET_NULL
    )
    purchase_order = models.ForeignKey(
        "purchasing.PurchaseOrder",
        null=True,
        blank=True,
        related_name="stock_transactions",
        on_delete=models.SET_NULL,
    )
    shipment = models.ForeignKey(
        "purchasing.Shipment", null=True, blank=True, related_name="stock_transactions", on_delete=models.SET_NULL
    )
    layer = models.ForeignKey(
        InventoryLayer, null=True, blank=True, related_name="transactions", on_delete=models.PROTECT
    )
    from_location = models.ForeignKey(
        "locations.StorageLocation", null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )
    to_location = models.ForeignKey(
        "locations.StorageLocation", null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                name="transaction_quantity_sign",
                condition=(
                    models.Q(transaction_type=TransactionType.RECEIVED, quantity__gt=0)
                    | models.Q(transaction_type=TransactionType.USED, quantity__lt=0)
                    | models.Q(transaction_type=TransactionType.TRANSFERRED, quantity=0)
                    | (models.Q(transaction_type=TransactionType.ADJUSTED) & ~models.Q(quantity=0))
                ),
            ),
        ]
        indexes = [
            models.Index(fields=["part", "transaction_type", "created_at"]),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.transaction_type} {self.quantity} for {self.part_id}"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Stock transactions are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Stock transactions are immutable")


# EOF
