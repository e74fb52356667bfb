"""DRF serializers for purchasing.

Order totals are computed on read from the lines plus shipping and tax; no
serializer accepts a total as input.
"""

from decimal import Decimal

from jobs.models import Job
from rest_framework import serializers
from suppliers.models import Supplier

from .models import PurchaseOrder, PurchaseOrderLine, Shipment


class PurchaseOrderLineSerializer(serializers.ModelSerializer):
    part_number = serializers.CharField(source="part.part_number", read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    quantity_remaining = serializers.IntegerField(read_only=True)
    job_number = serializers.CharField(source="job.job_number", read_only=True, default=None)

    class Meta:
        model = PurchaseOrderLine
        fields = [
            "id",
            "line_number",
            "part_number",
            "description",
            "quantity",
            "unit_cost",
            "line_total",
            "quantity_received",
            "quantity_remaining",
            "job_number",
            "has_core",
            "core_charge",
            "core_returned",
            "core_return_date",
            "core_tracking",
            "core_credit_amount",
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    """API representation of a purchase order with computed totals."""

    lines = PurchaseOrderLineSerializer(many=True, read_only=True)
    supplier_code = serializers.CharField(source="supplier.supplier_code", read_only=True, default=None)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "order_number",
            "supplier_code",
            "supplier_name",
            "status",
            "order_date",
            "expected_delivery",
            "actual_delivery",
            "tracking_number",
            "carrier",
            "notes",
            "lines",
            "subtotal",
            "shipping_cost",
            "tax",
            "total",
            "created_at",
        ]
        read_only_fields = fields


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplier = serializers.SlugRelatedField(
        slug_field="supplier_code", queryset=Supplier.objects.filter(active=True), required=False, allow_null=True
    )
    supplier_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    expected_delivery = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class LineCreateSerializer(serializers.Serializer):
    part_number = serializers.CharField(max_length=50)
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )
    description = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    job_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    core_charge = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )

    def validate_job_number(self, value):
        if not value:
            return None
        job = Job.objects.filter(job_number=value).first()
        if job is None:
            raise serializers.ValidationError("Unknown job.")
        return job


class LineUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, required=False)
    unit_cost = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False)
    description = serializers.CharField(max_length=200, required=False, allow_blank=True)
    core_charge = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False)


class ChargesSerializer(serializers.Serializer):
    shipping_cost = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )
    tax = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )


class ShipSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    carrier = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    tracking_url = serializers.URLField(required=False, allow_blank=True, default="")
    expected_delivery = serializers.DateField(required=False, allow_null=True, default=None)


class DeliverySerializer(serializers.Serializer):
    line_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class ReceiveDeliveriesSerializer(serializers.Serializer):
    deliveries = DeliverySerializer(many=True, allow_empty=False)
    shipment = serializers.SlugRelatedField(
        slug_field="shipment_code", queryset=Shipment.objects.all(), required=False, allow_null=True
    )


class CoreReturnSerializer(serializers.Serializer):
    tracking = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    credit_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True, default=None
    )
    returned_on = serializers.DateField(required=False, allow_null=True, default=None)


class ShipmentSerializer(serializers.ModelSerializer):
    orders = serializers.SlugRelatedField(many=True, read_only=True, slug_field="order_number")

    class Meta:
        model = Shipment
        fields = [
            "id",
            "shipment_code",
            "tracking_number",
            "tracking_url",
            "carrier",
            "supplier_name",
            "status",
            "ship_date",
            "expected_delivery",
            "actual_delivery",
            "orders",
        ]
        read_only_fields = fields


class OverdueCoreSerializer(serializers.Serializer):
    line_id = serializers.IntegerField()
    order_number = serializers.CharField()
    supplier_name = serializers.CharField()
    part_number = serializers.CharField()
    core_charge = serializers.DecimalField(max_digits=10, decimal_places=2)
    since = serializers.DateField()
    days_outstanding = serializers.IntegerField()


# EOF
