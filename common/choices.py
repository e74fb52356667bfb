"""Shared enumerations and choices used across apps."""

from django.db import models


class TransactionType(models.TextChoices):
    RECEIVED = "received", "Received"
    USED = "used", "Used"
    TRANSFERRED = "transferred", "Transferred"
    ADJUSTED = "adjusted", "Adjusted"


class LayerSource(models.TextChoices):
    PURCHASE_ORDER = "purchase_order", "Purchase order"
    MANUAL = "manual", "Manual"
    ADJUSTMENT = "adjustment", "Adjustment"


class LocationType(models.TextChoices):
    VEHICLE = "vehicle", "Vehicle"
    BUILDING = "building", "Building"
    CONTAINER = "container", "Container"
    SHELF = "shelf", "Shelf"
    BIN = "bin", "Bin"
    DRAWER = "drawer", "Drawer"


class PurchaseOrderStatus(models.TextChoices):
    """Lifecycle statuses for purchase orders."""

    DRAFT = "draft", "Draft"
    SUBMITTED = "submitted", "Submitted"
    ORDERED = "ordered", "Ordered"
    SHIPPED = "shipped", "Shipped"
    PARTIALLY_RECEIVED = "partially_received", "Partially Received"
    RECEIVED = "received", "Received"
    CANCELLED = "cancelled", "Cancelled"


class ShipmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SHIPPED = "shipped", "Shipped"
    IN_TRANSIT = "in_transit", "In Transit"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for Delivery"
    DELIVERED = "delivered", "Delivered"
    EXCEPTION = "exception", "Exception"


class Confidence(models.TextChoices):
    """Confidence labels for min-stock recommendations."""

    HIGH = "High", "High"
    MEDIUM = "Medium", "Medium"
    LOW = "Low", "Low"


class Urgency(models.TextChoices):
    """Replenishment alert urgency, most severe first."""

    CRITICAL = "critical", "Critical"
    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"
    LOW = "low", "Low"
