"""Inventory API: parts, FIFO ledger operations, groups and replenishment."""

from common.responses import error_response, not_found
from common.throttling import SettingsScopedRateThrottle
from django.http import Http404
from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import filters as drf_filters
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle
from rest_framework.views import APIView

from . import planning, replenishment, scoring, selectors, services
from .exceptions import InventoryError, PartNotFoundError
from .models import CrossReferenceGroup, Part, StockTransaction
from .serializers import (
    AdjustSerializer,
    ConsumeSerializer,
    CostBreakdownSerializer,
    CrossReferenceGroupSerializer,
    GroupCreateSerializer,
    GroupMemberSerializer,
    InventoryLayerSerializer,
    MinStockOverrideSerializer,
    MinStockRecommendationSerializer,
    PartRegisterSerializer,
    PartSerializer,
    ReceiveSerializer,
    ReplenishmentAlertSerializer,
    StockingScoreSerializer,
    StockTransactionSerializer,
    TransferSerializer,
)

THROTTLES = [SettingsScopedRateThrottle, UserRateThrottle, AnonRateThrottle]


class InventoryHealthView(APIView):
    throttle_classes = []

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Inventory health",
        description="Simple healthcheck endpoint for the inventory app",
        examples=[OpenApiExample("Health OK", value={"status": "ok", "app": "inventory"})],
    )
    def get(self, request):
        return Response({"status": "ok", "app": "inventory"})


class PartFilterSet(filters.FilterSet):
    category = filters.CharFilter(field_name="category", lookup_expr="iexact")
    brand = filters.CharFilter(field_name="brand", lookup_expr="iexact")
    group = filters.CharFilter(field_name="xref_group__group_code")
    location = filters.CharFilter(field_name="storage_location__location_code")
    min_score = filters.NumberFilter(field_name="stocking_score", lookup_expr="gte")

    class Meta:
        model = Part
        fields = ["category", "brand", "auto_replenish", "group", "location", "min_score"]


@extend_schema_view(
    list=extend_schema(
        summary="List parts",
        description=(
            "Returns parts with stock and valuation. Filters: `category`, `brand`, `auto_replenish`, `group`, "
            "`location`, `min_score`. Ordering by `part_number`, `current_stock` or `stocking_score`."
        ),
        tags=["Inventory Endpoints"],
    ),
    retrieve=extend_schema(
        summary="Get part by part number",
        tags=["Inventory Endpoints"],
        examples=[
            OpenApiExample(
                "Part",
                value={
                    "id": 1,
                    "part_number": "WR55X10025",
                    "description": "Temperature sensor",
                    "average_cost": "10.75",
                    "sell_price": "12.90",
                    "current_stock": 2,
                    "effective_min_stock": 3,
                    "stocking_score": "7.50",
                    "xref_group_code": "XREF-0001",
                    "storage_location_path": "Truck 1 / Bin A",
                },
                response_only=True,
            )
        ],
    ),
)
class PartViewSet(viewsets.ReadOnlyModelViewSet):
    """Parts plus the ledger operations that mutate them.

    Writes require authentication and map domain errors to 400/404/409.
    """

    serializer_class = PartSerializer
    lookup_field = "part_number"
    lookup_value_regex = "[^/]+"
    permission_classes = [IsAuthenticatedOrReadOnly]
    throttle_classes = THROTTLES
    filterset_class = PartFilterSet
    filter_backends = [filters.DjangoFilterBackend, drf_filters.OrderingFilter, drf_filters.SearchFilter]
    ordering_fields = ["part_number", "current_stock", "stocking_score"]
    search_fields = ["part_number", "description", "brand"]

    def get_queryset(self):
        return Part.objects.select_related("xref_group", "storage_location").order_by("part_number")

    def get_throttles(self):
        self.throttle_scope = "inventory" if self.request.method in ("GET", "HEAD", "OPTIONS") else "inventory_write"
        return super().get_throttles()

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Register part",
        description="Creates the part on first registration; returns the existing part otherwise.",
        request=PartRegisterSerializer,
        responses={201: PartSerializer, 200: PartSerializer},
    )
    def create(self, request):
        serializer = PartRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        existed = Part.objects.filter(part_number=data["part_number"].strip().upper()).exists()
        try:
            part = services.register_part(**data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(PartSerializer(part).data, status=status.HTTP_200_OK if existed else status.HTTP_201_CREATED)

    def _part(self):
        try:
            return selectors.get_part(self.kwargs["part_number"])
        except PartNotFoundError:
            raise Http404

    @extend_schema(
        tags=["Inventory Endpoints"], summary="List cost layers", responses=InventoryLayerSerializer(many=True)
    )
    @action(detail=True, methods=["get"])
    def layers(self, request, part_number=None):
        part = self._part()
        qs = part.layers.order_by("received_at", "id")
        if request.query_params.get("open") in ("1", "true"):
            qs = selectors.list_open_layers(part.id)
        return Response(InventoryLayerSerializer(qs, many=True).data)

    @extend_schema(
        tags=["Inventory Endpoints"], summary="List part transactions", responses=StockTransactionSerializer(many=True)
    )
    @action(detail=True, methods=["get"])
    def transactions(self, request, part_number=None):
        part = self._part()
        qs = part.transactions.select_related("part", "job").order_by("-created_at", "-id")
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(StockTransactionSerializer(page, many=True).data)
        return Response(StockTransactionSerializer(qs, many=True).data)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Receive stock",
        description="Appends a FIFO cost layer and increases stock.",
        request=ReceiveSerializer,
        responses={201: InventoryLayerSerializer},
        examples=[OpenApiExample("Receive", value={"quantity": 5, "unit_cost": "10.00"}, request_only=True)],
    )
    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated])
    def receive(self, request, part_number=None):
        serializer = ReceiveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            layer = services.receive(part_number=part_number, **serializer.validated_data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(InventoryLayerSerializer(layer).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Consume stock",
        description="Uses stock oldest layer first. All-or-nothing; 409 when stock is short.",
        request=ConsumeSerializer,
        responses={200: CostBreakdownSerializer},
        examples=[
            OpenApiExample(
                "Insufficient stock",
                value={"detail": "Insufficient stock for WR55X10025: requested 9, available 2"},
                response_only=True,
                status_codes=["409"],
            )
        ],
    )
    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated])
    def consume(self, request, part_number=None):
        serializer = ConsumeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            breakdown = services.consume(
                part_number=part_number, quantity=data["quantity"], job=data["job_number"], reason=data["reason"]
            )
        except InventoryError as exc:
            return error_response(exc)
        return Response(CostBreakdownSerializer(breakdown).data)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Adjust stock",
        request=AdjustSerializer,
        responses={201: StockTransactionSerializer},
    )
    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated])
    def adjust(self, request, part_number=None):
        serializer = AdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            tx = services.adjust(part_number=part_number, **serializer.validated_data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(StockTransactionSerializer(tx).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Transfer part",
        description="Moves the part to another storage location. Cost layers are untouched.",
        request=TransferSerializer,
        responses={201: StockTransactionSerializer},
    )
    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated])
    def transfer(self, request, part_number=None):
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            tx = services.transfer(part_number=part_number, **serializer.validated_data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(StockTransactionSerializer(tx).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Estimate FIFO cost",
        parameters=[OpenApiParameter("quantity", OpenApiTypes.INT, location="query", required=True)],
        responses={200: CostBreakdownSerializer},
    )
    @action(detail=True, methods=["get"], url_path="cost-estimate")
    def cost_estimate(self, request, part_number=None):
        try:
            quantity = int(request.query_params.get("quantity", ""))
        except ValueError:
            return Response({"detail": "quantity must be an integer"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            breakdown = services.estimate_fifo_cost(part_number=part_number, quantity=quantity)
        except InventoryError as exc:
            return error_response(exc)
        return Response(CostBreakdownSerializer(breakdown).data)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Stocking score",
        description="Computes the 0-10 stocking score with its breakdown. Does not persist it.",
        responses={200: StockingScoreSerializer},
    )
    @action(detail=True, methods=["get"], url_path="stocking-score")
    def stocking_score(self, request, part_number=None):
        score = scoring.calculate_stocking_score(self._part())
        return Response(StockingScoreSerializer(score).data)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Min-stock recommendation or override",
        description="GET forecasts a minimum stock level; PUT sets or clears (null) the manual override.",
        request=MinStockOverrideSerializer,
        responses={200: MinStockRecommendationSerializer},
    )
    @action(detail=True, methods=["get", "put"], url_path="min-stock")
    def min_stock(self, request, part_number=None):
        if request.method == "GET":
            rec = planning.recommended_min_stock(self._part())
            return Response(MinStockRecommendationSerializer(rec).data)
        serializer = MinStockOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            part = planning.update_part_min_stock(part_number=part_number, **serializer.validated_data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(PartSerializer(part).data)


class TransactionFilterSet(filters.FilterSet):
    part = filters.CharFilter(field_name="part__part_number")
    job = filters.CharFilter(field_name="job__job_number")
    created_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lt")

    class Meta:
        model = StockTransaction
        fields = ["part", "transaction_type", "job", "purchase_order", "created_after", "created_before"]


class TransactionListView(generics.ListAPIView):
    serializer_class = StockTransactionSerializer
    throttle_scope = "inventory"
    throttle_classes = THROTTLES
    filterset_class = TransactionFilterSet
    filter_backends = [filters.DjangoFilterBackend]

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock transactions",
        description=(
            "Immutable audit trail. Filters: part, transaction_type, job, purchase_order, created_after, "
            "created_before."
        ),
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return StockTransaction.objects.select_related("part", "job").order_by("-created_at", "-id")


class GroupListCreateView(APIView):
    throttle_classes = THROTTLES
    permission_classes = [IsAuthenticatedOrReadOnly]

    def get_throttles(self):
        self.throttle_scope = "inventory" if self.request.method == "GET" else "inventory_write"
        return super().get_throttles()

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List cross-reference groups",
        responses=CrossReferenceGroupSerializer(many=True),
    )
    def get(self, request):
        qs = CrossReferenceGroup.objects.prefetch_related("members").order_by("group_code")
        return Response(CrossReferenceGroupSerializer(qs, many=True).data)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Create cross-reference group",
        description="Groups interchangeable parts. 409 when a part already belongs to a group.",
        request=GroupCreateSerializer,
        responses={201: CrossReferenceGroupSerializer},
        examples=[
            OpenApiExample(
                "Create",
                value={
                    "part_numbers": ["WR55X10025", "AP2634727"],
                    "description": "Defrost sensor",
                    "min_stock_group": 3,
                },
                request_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            group = services.create_group(**serializer.validated_data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(CrossReferenceGroupSerializer(group).data, status=status.HTTP_201_CREATED)


class GroupDetailView(APIView):
    throttle_scope = "inventory"
    throttle_classes = THROTTLES

    @extend_schema(tags=["Inventory Endpoints"], summary="Get group", responses=CrossReferenceGroupSerializer)
    def get(self, request, group_id: int):
        group = CrossReferenceGroup.objects.filter(id=group_id).first()
        if group is None:
            return not_found()
        return Response(CrossReferenceGroupSerializer(group).data)


class GroupMemberView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"
    throttle_classes = THROTTLES

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Add group member",
        request=GroupMemberSerializer,
        responses={200: CrossReferenceGroupSerializer},
    )
    def post(self, request, group_id: int):
        serializer = GroupMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if not CrossReferenceGroup.objects.filter(id=group_id).exists():
            return not_found()
        try:
            group = services.add_group_member(group_id=group_id, **serializer.validated_data)
        except InventoryError as exc:
            return error_response(exc)
        return Response(CrossReferenceGroupSerializer(group).data)

    @extend_schema(
        tags=["Inventory Endpoints"], summary="Remove group member", responses={200: CrossReferenceGroupSerializer}
    )
    def delete(self, request, group_id: int, part_number: str):
        if not CrossReferenceGroup.objects.filter(id=group_id).exists():
            return not_found()
        try:
            group = services.remove_group_member(group_id=group_id, part_number=part_number)
        except InventoryError as exc:
            return error_response(exc)
        return Response(CrossReferenceGroupSerializer(group).data)


class ReplenishmentAlertsView(APIView):
    throttle_scope = "inventory"
    throttle_classes = THROTTLES

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Replenishment alerts",
        description="Read-only scan of auto-replenish parts at or below minimum, most urgent first.",
        responses=ReplenishmentAlertSerializer(many=True),
        examples=[
            OpenApiExample(
                "Alerts",
                value=[
                    {
                        "part_number": "WR55X10025",
                        "description": "Temperature sensor",
                        "group_code": None,
                        "effective_stock": 0,
                        "effective_min": 2,
                        "recommended_qty": 3,
                        "estimated_cost": "32.25",
                        "urgency": "critical",
                        "stocking_score": "8.50",
                    }
                ],
                response_only=True,
            )
        ],
    )
    def get(self, request):
        alerts = replenishment.scan()
        urgency = request.query_params.get("urgency")
        if urgency:
            alerts = [a for a in alerts if a.urgency == urgency]
        return Response(ReplenishmentAlertSerializer(alerts, many=True).data)


# EOF
