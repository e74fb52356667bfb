"""URL routes for the inventory app."""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import (
    GroupDetailView,
    GroupListCreateView,
    GroupMemberView,
    InventoryHealthView,
    PartViewSet,
    ReplenishmentAlertsView,
    TransactionListView,
)

router = SimpleRouter()
router.register(r"parts", PartViewSet, basename="part")

urlpatterns = [
    path("health/", InventoryHealthView.as_view(), name="inventory-health"),
    path("transactions/", TransactionListView.as_view(), name="transaction-list"),
    path("groups/", GroupListCreateView.as_view(), name="group-list"),
    path("groups/<int:group_id>/", GroupDetailView.as_view(), name="group-detail"),
    path("groups/<int:group_id>/members/", GroupMemberView.as_view(), name="group-member-add"),
    path("groups/<int:group_id>/members/<str:part_number>/", GroupMemberView.as_view(), name="group-member-remove"),
    path("replenishment/", ReplenishmentAlertsView.as_view(), name="replenishment-alerts"),
    path("", include(router.urls)),
]

# EOF
