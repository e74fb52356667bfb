from django.contrib import admin

from .models import Supplier, SupplierPricing


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("id", "supplier_code", "name", "active", "preferred")
    list_filter = ("active", "preferred")
    search_fields = ("supplier_code", "name")


@admin.register(SupplierPricing)
class SupplierPricingAdmin(admin.ModelAdmin):
    list_display = ("id", "supplier", "part", "unit_price", "lead_time_days", "preferred", "active")
    list_filter = ("preferred", "active")
    search_fields = ("part__part_number", "supplier__name")
