"""Serializers for the inventory API.

Model serializers are read-only; mutations go through the small input
serializers below and then through ``inventory.services``.
"""

from decimal import Decimal

from jobs.models import Job
from locations.models import StorageLocation
from rest_framework import serializers

from .models import CrossReferenceGroup, InventoryLayer, Part, StockTransaction


class PartSerializer(serializers.ModelSerializer):
    """Part with its effective minimum and the path of its storage location."""

    effective_min_stock = serializers.IntegerField(read_only=True)
    xref_group_code = serializers.CharField(source="xref_group.group_code", read_only=True, default=None)
    storage_location_path = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Part
        fields = [
            "id",
            "part_number",
            "description",
            "category",
            "brand",
            "average_cost",
            "markup_percent",
            "sell_price",
            "current_stock",
            "min_stock",
            "min_stock_override",
            "min_stock_override_reason",
            "effective_min_stock",
            "auto_replenish",
            "stocking_score",
            "times_used",
            "first_used_at",
            "last_used_at",
            "xref_group",
            "xref_group_code",
            "storage_location",
            "storage_location_path",
            "location_notes",
            "updated_at",
        ]
        read_only_fields = fields

    def get_storage_location_path(self, obj: Part):
        return obj.storage_location.path if obj.storage_location_id else None


class PartRegisterSerializer(serializers.Serializer):
    part_number = serializers.CharField(max_length=50)
    description = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    brand = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    markup_percent = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, min_value=Decimal("0"))
    auto_replenish = serializers.BooleanField(required=False, default=True)


class InventoryLayerSerializer(serializers.ModelSerializer):
    class Meta:
        model = InventoryLayer
        fields = [
            "id",
            "quantity_received",
            "quantity_remaining",
            "unit_cost",
            "received_at",
            "source",
            "purchase_order",
        ]
        read_only_fields = fields


class StockTransactionSerializer(serializers.ModelSerializer):
    part_number = serializers.CharField(source="part.part_number", read_only=True)
    job_number = serializers.CharField(source="job.job_number", read_only=True, default=None)

    class Meta:
        model = StockTransaction
        fields = [
            "id",
            "part_number",
            "transaction_type",
            "quantity",
            "unit_cost",
            "total_cost",
            "job",
            "job_number",
            "purchase_order",
            "shipment",
            "from_location",
            "to_location",
            "reason",
            "created_at",
        ]
        read_only_fields = fields


class CrossReferenceGroupSerializer(serializers.ModelSerializer):
    """Group with members and the combined stock computed at read time."""

    members = serializers.SlugRelatedField(many=True, read_only=True, slug_field="part_number")
    combined_stock = serializers.IntegerField(read_only=True)
    is_below_minimum = serializers.BooleanField(read_only=True)

    class Meta:
        model = CrossReferenceGroup
        fields = [
            "id",
            "group_code",
            "description",
            "min_stock_group",
            "auto_replenish",
            "members",
            "combined_stock",
            "is_below_minimum",
        ]
        read_only_fields = fields


class GroupCreateSerializer(serializers.Serializer):
    part_numbers = serializers.ListField(child=serializers.CharField(max_length=50), allow_empty=False)
    description = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    min_stock_group = serializers.IntegerField(min_value=0, required=False, default=1)
    auto_replenish = serializers.BooleanField(required=False, default=True)


class GroupMemberSerializer(serializers.Serializer):
    part_number = serializers.CharField(max_length=50)


class ReceiveSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"))
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class ConsumeSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    job_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")

    def validate_job_number(self, value):
        if not value:
            return None
        job = Job.objects.filter(job_number=value).first()
        if job is None:
            raise serializers.ValidationError("Unknown job.")
        return job


class AdjustSerializer(serializers.Serializer):
    delta = serializers.IntegerField()
    reason = serializers.CharField(max_length=200)

    def validate_delta(self, value):
        if value == 0:
            raise serializers.ValidationError("Adjustment must be non-zero.")
        return value


class TransferSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    to_location = serializers.SlugRelatedField(
        slug_field="location_code", queryset=StorageLocation.objects.filter(active=True)
    )
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class MinStockOverrideSerializer(serializers.Serializer):
    min_stock = serializers.IntegerField(min_value=0, allow_null=True)
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class LayerDrawSerializer(serializers.Serializer):
    layer_id = serializers.IntegerField()
    received_at = serializers.DateTimeField()
    quantity = serializers.IntegerField()
    unit_cost = serializers.DecimalField(max_digits=10, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)


class CostBreakdownSerializer(serializers.Serializer):
    part_number = serializers.CharField()
    quantity = serializers.IntegerField()
    total_cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    average_unit_cost = serializers.DecimalField(max_digits=10, decimal_places=2)
    draws = LayerDrawSerializer(many=True)
    transaction_id = serializers.IntegerField(source="transaction.id", default=None)


class StockingScoreSerializer(serializers.Serializer):
    part_number = serializers.CharField()
    value = serializers.DecimalField(max_digits=4, decimal_places=2)
    recommendation = serializers.CharField()
    breakdown = serializers.DictField(child=serializers.DecimalField(max_digits=4, decimal_places=2))
    callback_jobs = serializers.IntegerField()


class MinStockRecommendationSerializer(serializers.Serializer):
    part_number = serializers.CharField()
    value = serializers.IntegerField()
    confidence = serializers.CharField()
    reasoning = serializers.DictField()


class ReplenishmentAlertSerializer(serializers.Serializer):
    part_number = serializers.CharField()
    description = serializers.CharField()
    group_code = serializers.CharField(allow_null=True)
    effective_stock = serializers.IntegerField()
    effective_min = serializers.IntegerField()
    recommended_qty = serializers.IntegerField()
    estimated_cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    urgency = serializers.CharField()
    stocking_score = serializers.DecimalField(max_digits=4, decimal_places=2)


# EOF
