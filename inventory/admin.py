"""Admin registrations for inventory app.

Layers and transactions are audit records: visible, never editable here.
"""

from django.contrib import admin

from .models import CrossReferenceGroup, InventoryLayer, Part, StockTransaction


class InventoryLayerInline(admin.TabularInline):
    model = InventoryLayer
    extra = 0
    can_delete = False
    fields = ("received_at", "quantity_received", "quantity_remaining", "unit_cost", "source", "purchase_order")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Part)
class PartAdmin(admin.ModelAdmin):
    list_display = (
        "part_number",
        "description",
        "current_stock",
        "min_stock",
        "min_stock_override",
        "average_cost",
        "stocking_score",
        "auto_replenish",
        "xref_group",
    )
    list_filter = ("auto_replenish", "category", "brand")
    search_fields = ("part_number", "description")
    readonly_fields = ("current_stock", "average_cost", "sell_price", "times_used", "first_used_at", "last_used_at")
    inlines = [InventoryLayerInline]


@admin.register(CrossReferenceGroup)
class CrossReferenceGroupAdmin(admin.ModelAdmin):
    list_display = ("group_code", "description", "min_stock_group", "auto_replenish")
    search_fields = ("group_code", "description", "members__part_number")
    readonly_fields = ("group_code",)


@admin.register(StockTransaction)
class StockTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "part", "transaction_type", "quantity", "unit_cost", "total_cost", "job", "created_at")
    list_filter = ("transaction_type",)
    search_fields = ("part__part_number", "reason", "job__job_number")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# EOF
