from django.contrib import admin

from .models import IdempotencyKey, PurchaseOrder, PurchaseOrderLine, Shipment


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    fields = ("line_number", "part", "quantity", "unit_cost", "quantity_received", "has_core", "core_charge")
    readonly_fields = ("quantity_received",)


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ("id", "order_number", "supplier_name", "status", "order_date", "expected_delivery", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("order_number", "supplier_name", "tracking_number")
    date_hierarchy = "created_at"
    readonly_fields = ("order_number", "status")
    inlines = [PurchaseOrderLineInline]


@admin.register(PurchaseOrderLine)
class PurchaseOrderLineAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "line_number", "part", "quantity", "quantity_received", "has_core", "core_returned")
    list_filter = ("has_core", "core_returned")
    search_fields = ("part__part_number", "order__order_number", "core_tracking")


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = ("id", "shipment_code", "carrier", "tracking_number", "status", "ship_date", "actual_delivery")
    list_filter = ("status", "carrier")
    search_fields = ("shipment_code", "tracking_number")


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
