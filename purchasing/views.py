"""Purchasing API endpoints.

State-changing endpoints accept an optional ``Idempotency-Key`` header; a
replay returns the stored response and a reused key with a different payload
returns 409.
"""

from common.responses import error_response, not_found
from common.throttling import SettingsScopedRateThrottle
from django.http import Http404
from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from inventory.exceptions import InventoryError
from inventory.replenishment import scan
from rest_framework import generics
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle
from rest_framework.views import APIView

from . import selectors, services
from .models import PurchaseOrder, PurchaseOrderLine, Shipment
from .serializers import (
    ChargesSerializer,
    CoreReturnSerializer,
    LineCreateSerializer,
    LineUpdateSerializer,
    OverdueCoreSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderLineSerializer,
    PurchaseOrderSerializer,
    ReceiveDeliveriesSerializer,
    ShipmentSerializer,
    ShipSerializer,
)

THROTTLES = [SettingsScopedRateThrottle, UserRateThrottle, AnonRateThrottle]

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)

ERROR_RESPONSE = inline_serializer(name="PurchasingError", fields={"detail": rf_serializers.CharField()})


def _get_order(order_id: int) -> PurchaseOrder:
    try:
        return PurchaseOrder.objects.prefetch_related("lines__part").get(pk=order_id)
    except PurchaseOrder.DoesNotExist:
        raise Http404


def _order_body(order) -> dict:
    order = PurchaseOrder.objects.prefetch_related("lines__part", "lines__job").get(pk=order.pk)
    return PurchaseOrderSerializer(order).data


def _respond(request, handler) -> Response:
    """Run ``handler`` directly, or through the idempotency store when a key is sent."""

    idem_key = request.headers.get("Idempotency-Key")
    if idem_key:
        body, code = services.with_idempotency(
            key=idem_key,
            user=request.user,
            path=str(request.path),
            method=str(request.method),
            request_hash=services.compute_request_hash(getattr(request, "data", None)),
            handler=handler,
        )
        return Response(body, status=code)
    body, code = handler()
    return Response(body, status=code)


class PurchaseOrderFilterSet(filters.FilterSet):
    supplier = filters.CharFilter(field_name="supplier__supplier_code")
    part = filters.CharFilter(field_name="lines__part__part_number", distinct=True)
    ordered_after = filters.DateFilter(field_name="order_date", lookup_expr="gte")

    class Meta:
        model = PurchaseOrder
        fields = ["status", "supplier", "part", "ordered_after"]


class PurchaseOrderListCreateView(generics.ListAPIView):
    serializer_class = PurchaseOrderSerializer
    throttle_classes = THROTTLES
    filterset_class = PurchaseOrderFilterSet
    filter_backends = [filters.DjangoFilterBackend]

    def get_throttles(self):
        self.throttle_scope = "purchasing" if self.request.method == "GET" else "purchasing_write"
        return super().get_throttles()

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsAuthenticated()]
        return super().get_permissions()

    def get_queryset(self):
        return PurchaseOrder.objects.select_related("supplier").prefetch_related("lines__part", "lines__job")

    @extend_schema(
        tags=["Purchasing"],
        summary="List purchase orders",
        description="Filters: `status`, `supplier` (code), `part` (part number), `ordered_after` (date).",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Purchasing"],
        summary="Create draft purchase order",
        request=PurchaseOrderCreateSerializer,
        responses={201: PurchaseOrderSerializer},
        examples=[
            OpenApiExample("Create", value={"supplier": "SUP-001", "notes": "Weekly restock"}, request_only=True)
        ],
    )
    def post(self, request):
        serializer = PurchaseOrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = services.create_purchase_order(created_by=request.user, **serializer.validated_data)
        return Response(_order_body(order), status=status.HTTP_201_CREATED)


class PurchaseOrderDetailView(APIView):
    throttle_scope = "purchasing"
    throttle_classes = THROTTLES

    def get_throttles(self):
        self.throttle_scope = "purchasing" if self.request.method == "GET" else "purchasing_write"
        return super().get_throttles()

    def get_permissions(self):
        if self.request.method == "DELETE":
            return [IsAuthenticated()]
        return super().get_permissions()

    @extend_schema(
        tags=["Purchasing"],
        summary="Get purchase order",
        responses={200: PurchaseOrderSerializer},
        examples=[
            OpenApiExample(
                "Order",
                value={
                    "id": 1,
                    "order_number": "PO-0001",
                    "supplier_name": "Marcone",
                    "status": "partially_received",
                    "lines": [
                        {
                            "id": 10,
                            "line_number": 1,
                            "part_number": "WR55X10025",
                            "quantity": 10,
                            "unit_cost": "12.00",
                            "line_total": "120.00",
                            "quantity_received": 4,
                            "quantity_remaining": 6,
                        }
                    ],
                    "subtotal": "120.00",
                    "shipping_cost": "9.95",
                    "tax": "7.20",
                    "total": "137.15",
                },
                response_only=True,
            )
        ],
    )
    def get(self, request, order_id: int):
        return Response(PurchaseOrderSerializer(_get_order(order_id)).data)

    @extend_schema(
        tags=["Purchasing"],
        summary="Delete draft purchase order",
        description="Only Draft orders can be deleted; later orders are cancelled instead.",
        responses={204: None, 404: ERROR_RESPONSE, 409: ERROR_RESPONSE},
    )
    def delete(self, request, order_id: int):
        order = _get_order(order_id)
        try:
            services.delete_order(order)
        except InventoryError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PurchaseOrderLinesView(APIView):
    """Add lines to (or remove them from) a Draft order."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "purchasing_write"
    throttle_classes = THROTTLES

    @extend_schema(
        tags=["Purchasing"],
        summary="Add line",
        description="Draft orders only. `unit_cost` defaults to the preferred supplier price.",
        request=LineCreateSerializer,
        responses={201: PurchaseOrderLineSerializer, 404: ERROR_RESPONSE, 409: ERROR_RESPONSE},
    )
    def post(self, request, order_id: int):
        order = _get_order(order_id)
        serializer = LineCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data["job"] = data.pop("job_number", None)
        try:
            line = services.add_line(order, **data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(PurchaseOrderLineSerializer(line).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Purchasing"],
        summary="Edit line",
        description="Draft orders only. Send any of `quantity`, `unit_cost`, `description`, `core_charge`.",
        request=LineUpdateSerializer,
        responses={200: PurchaseOrderLineSerializer, 404: ERROR_RESPONSE, 409: ERROR_RESPONSE},
    )
    def patch(self, request, order_id: int, line_id: int):
        order = _get_order(order_id)
        serializer = LineUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            line = services.update_line(order, line_id, **serializer.validated_data)
        except PurchaseOrderLine.DoesNotExist:
            return not_found()
        except InventoryError as exc:
            return error_response(exc)
        return Response(PurchaseOrderLineSerializer(line).data)

    @extend_schema(tags=["Purchasing"], summary="Remove line", responses={200: PurchaseOrderSerializer})
    def delete(self, request, order_id: int, line_id: int):
        order = _get_order(order_id)
        try:
            order = services.remove_line(order, line_id)
        except PurchaseOrderLine.DoesNotExist:
            return not_found()
        except InventoryError as exc:
            return error_response(exc)
        return Response(_order_body(order))


class PurchaseOrderChargesView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "purchasing_write"
    throttle_classes = THROTTLES

    @extend_schema(
        tags=["Purchasing"],
        summary="Set shipping and tax",
        request=ChargesSerializer,
        responses={200: PurchaseOrderSerializer},
    )
    def patch(self, request, order_id: int):
        order = _get_order(order_id)
        serializer = ChargesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.update_charges(order, **serializer.validated_data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(_order_body(order))


class PurchaseOrderTransitionView(APIView):
    """Lifecycle transitions: submit, mark ordered, ship and cancel.

    409 when the transition is not allowed from the current status.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "purchasing_write"
    throttle_classes = THROTTLES
    transition = None

    @extend_schema(
        tags=["Purchasing"],
        summary="Transition purchase order",
        description="`ship` accepts optional tracking details. Idempotent when Idempotency-Key header is set.",
        parameters=[IDEMPOTENCY_HEADER],
        request=ShipSerializer,
        responses={200: PurchaseOrderSerializer, 409: ERROR_RESPONSE},
        examples=[
            OpenApiExample(
                "Invalid transition",
                value={"detail": "Cannot move purchase order from draft to shipped"},
                response_only=True,
                status_codes=["409"],
            )
        ],
    )
    def post(self, request, order_id: int):
        order = _get_order(order_id)
        kwargs = {}
        if self.transition == "ship":
            serializer = ShipSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            kwargs = dict(serializer.validated_data)
        action = {
            "submit": services.submit,
            "order": services.mark_ordered,
            "ship": services.mark_shipped,
            "cancel": services.cancel,
        }[self.transition]

        def _handler():
            try:
                updated = action(order, **kwargs)
            except InventoryError as exc:
                return {"detail": str(exc)}, exc.status_code
            return _order_body(updated), 200

        return _respond(request, _handler)


class PurchaseOrderReceiveView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "purchasing_write"
    throttle_classes = THROTTLES

    @extend_schema(
        tags=["Purchasing"],
        summary="Receive deliveries",
        description=(
            "Receives quantities against lines. Each accepted quantity becomes a FIFO cost layer. "
            "The whole request is rejected (409) if any line would be over-received."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=ReceiveDeliveriesSerializer,
        responses={200: PurchaseOrderSerializer, 409: ERROR_RESPONSE},
        examples=[
            OpenApiExample("Receive", value={"deliveries": [{"line_id": 10, "quantity": 4}]}, request_only=True),
        ],
    )
    def post(self, request, order_id: int):
        order = _get_order(order_id)
        serializer = ReceiveDeliveriesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        deliveries = [(d["line_id"], d["quantity"]) for d in serializer.validated_data["deliveries"]]
        shipment = serializer.validated_data.get("shipment")

        def _handler():
            try:
                updated = services.receive(order, deliveries, shipment=shipment)
            except PurchaseOrderLine.DoesNotExist as exc:
                return {"detail": str(exc)}, 404
            except InventoryError as exc:
                return {"detail": str(exc)}, exc.status_code
            return _order_body(updated), 200

        return _respond(request, _handler)


class PurchaseOrdersFromAlertsView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "purchasing_write"
    throttle_classes = THROTTLES

    @extend_schema(
        tags=["Purchasing"],
        summary="Draft orders from replenishment alerts",
        description="Scans for alerts and drafts one order per preferred supplier. Optional `urgency` filter.",
        request=inline_serializer(
            name="FromAlertsRequest", fields={"urgency": rf_serializers.CharField(required=False)}
        ),
        responses={201: PurchaseOrderSerializer(many=True)},
    )
    def post(self, request):
        alerts = scan()
        urgency = request.data.get("urgency") if hasattr(request.data, "get") else None
        if urgency:
            alerts = [a for a in alerts if a.urgency == urgency]
        orders = services.create_orders_from_alerts(alerts, created_by=request.user)
        return Response([_order_body(o) for o in orders], status=status.HTTP_201_CREATED)


class CoreReturnView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "purchasing_write"
    throttle_classes = THROTTLES

    @extend_schema(
        tags=["Purchasing"],
        summary="Mark core returned",
        description="Records the return of a core. 409 if the line has no core or it was already returned.",
        request=CoreReturnSerializer,
        responses={200: PurchaseOrderLineSerializer, 404: ERROR_RESPONSE, 409: ERROR_RESPONSE},
    )
    def post(self, request, line_id: int):
        serializer = CoreReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            line = services.mark_core_returned(line_id, **serializer.validated_data)
        except PurchaseOrderLine.DoesNotExist:
            return not_found()
        except InventoryError as exc:
            return error_response(exc)
        return Response(PurchaseOrderLineSerializer(line).data)


class OverdueCoresView(APIView):
    throttle_scope = "purchasing"
    throttle_classes = THROTTLES

    @extend_schema(
        tags=["Purchasing"],
        summary="Overdue cores report",
        description="Advisory list of unreturned cores older than `days` (required).",
        parameters=[OpenApiParameter("days", OpenApiTypes.INT, location="query", required=True)],
        responses={
            200: inline_serializer(
                name="OverdueCoresResponse",
                fields={
                    "count": rf_serializers.IntegerField(),
                    "outstanding_total": rf_serializers.DecimalField(max_digits=12, decimal_places=2),
                    "results": OverdueCoreSerializer(many=True),
                },
            )
        },
    )
    def get(self, request):
        try:
            days = int(request.query_params.get("days", ""))
        except ValueError:
            return Response({"detail": "days is required and must be an integer"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            rows = selectors.list_overdue_cores(days)
        except InventoryError as exc:
            return error_response(exc)
        return Response(
            {
                "count": len(rows),
                "outstanding_total": str(selectors.outstanding_core_total()),
                "results": OverdueCoreSerializer(rows, many=True).data,
            }
        )


class ShipmentListView(generics.ListAPIView):
    serializer_class = ShipmentSerializer
    throttle_scope = "purchasing"
    throttle_classes = THROTTLES

    @extend_schema(tags=["Purchasing"], summary="List shipments", description="Filter with `status`.")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        qs = Shipment.objects.prefetch_related("orders").order_by("-id")
        status_value = self.request.query_params.get("status")
        if status_value:
            qs = qs.filter(status=status_value)
        return qs


# EOF
