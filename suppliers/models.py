"""Supplier and per-part pricing records.

Pricing rows feed lead times to the min-stock planner and default unit costs
to purchase order lines.
"""

from decimal import Decimal

from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Supplier(TimeStampedModel):
    supplier_code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    website = models.URLField(blank=True)
    active = models.BooleanField(default=True)
    preferred = models.BooleanField(default=False)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.supplier_code} {self.name}"


class SupplierPricing(TimeStampedModel):
    supplier = models.ForeignKey(Supplier, related_name="pricing", on_delete=models.CASCADE)
    part = models.ForeignKey("inventory.Part", related_name="supplier_pricing", on_delete=models.CASCADE)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    lead_time_days = models.PositiveIntegerField(null=True, blank=True)
    min_order_qty = models.PositiveIntegerField(default=1)
    in_stock = models.BooleanField(default=True)
    preferred = models.BooleanField(default=False)
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["part_id", "unit_price"]
        constraints = [
            models.UniqueConstraint(fields=["supplier", "part"], name="unique_pricing_per_supplier_part"),
            models.CheckConstraint(name="pricing_price_non_negative", condition=models.Q(unit_price__gte=0)),
        ]
        indexes = [
            models.Index(fields=["part", "preferred", "active"]),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Pricing<{self.supplier_id}:{self.part_id}> {self.unit_price or Decimal('0.00')}"
