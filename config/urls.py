"""URL configuration for the field parts project.

Parts, ledger and replenishment live under ``/api/v1/inventory/``; purchase
orders, shipments and cores under ``/api/v1/purchasing/``.
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from .health import health

admin.site.site_header = "Field Parts Admin"
admin.site.index_title = "Parts & Purchasing"

api_v1 = [
    path("inventory/", include("inventory.urls")),
    path("purchasing/", include("purchasing.urls")),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    # API schema and Swagger UI
    path("api/schema/", SpectacularAPIView.as_view(), name="api-schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="api-schema"), name="api-docs"),
    path("health/", health, name="health"),
    path("api/v1/", include(api_v1)),
]
