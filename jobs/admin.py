from django.contrib import admin

from .models import Job


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("id", "job_number", "is_callback", "completed_at", "created_at")
    list_filter = ("is_callback",)
    search_fields = ("job_number",)
