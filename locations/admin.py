"""Admin registrations for storage locations."""

from django.contrib import admin

from .models import StorageLocation


@admin.register(StorageLocation)
class StorageLocationAdmin(admin.ModelAdmin):
    list_display = ("id", "location_code", "name", "location_type", "parent", "active")
    list_filter = ("location_type", "active")
    search_fields = ("location_code", "name", "label_number")
