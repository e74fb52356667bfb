"""URL routes for the purchasing app (v1)."""

from django.urls import path

from .views import (
    CoreReturnView,
    OverdueCoresView,
    PurchaseOrderChargesView,
    PurchaseOrderDetailView,
    PurchaseOrderLinesView,
    PurchaseOrderListCreateView,
    PurchaseOrderReceiveView,
    PurchaseOrdersFromAlertsView,
    PurchaseOrderTransitionView,
    ShipmentListView,
)

app_name = "purchasing"

urlpatterns = [
    path("orders/", PurchaseOrderListCreateView.as_view(), name="order-list"),
    path("orders/from-alerts/", PurchaseOrdersFromAlertsView.as_view(), name="order-from-alerts"),
    path("orders/<int:order_id>/", PurchaseOrderDetailView.as_view(), name="order-detail"),
    path("orders/<int:order_id>/lines/", PurchaseOrderLinesView.as_view(), name="order-lines"),
    path("orders/<int:order_id>/lines/<int:line_id>/", PurchaseOrderLinesView.as_view(), name="order-line-detail"),
    path("orders/<int:order_id>/charges/", PurchaseOrderChargesView.as_view(), name="order-charges"),
    path(
        "orders/<int:order_id>/submit/", PurchaseOrderTransitionView.as_view(transition="submit"), name="order-submit"
    ),
    path("orders/<int:order_id>/order/", PurchaseOrderTransitionView.as_view(transition="order"), name="order-ordered"),
    path("orders/<int:order_id>/ship/", PurchaseOrderTransitionView.as_view(transition="ship"), name="order-ship"),
    path(
        "orders/<int:order_id>/cancel/", PurchaseOrderTransitionView.as_view(transition="cancel"), name="order-cancel"
    ),
    path("orders/<int:order_id>/receive/", PurchaseOrderReceiveView.as_view(), name="order-receive"),
    path("lines/<int:line_id>/core-return/", CoreReturnView.as_view(), name="core-return"),
    path("cores/overdue/", OverdueCoresView.as_view(), name="cores-overdue"),
    path("shipments/", ShipmentListView.as_view(), name="shipment-list"),
]
