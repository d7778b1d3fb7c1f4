import typing as t

from django.contrib import admin
from django.http import HttpRequest
from unfold.admin import ModelAdmin

from .models import LifecycleEvent


@admin.register(LifecycleEvent)
class LifecycleEventAdmin(ModelAdmin):  # type: ignore[misc]
    """Lifecycle events are append-only, the admin only reads them."""

    list_display = [
        "timestamp",
        "event_type",
        "order_type",
        "order_id",
        "venue_id",
        "verified_by",
        "verification_attempts",
        "is_redeemed",
        "total",
        "error",
    ]
    list_filter = ["event_type", "order_type", "is_redeemed", "verified_by"]
    search_fields = ["order_id", "venue_id"]
    date_hierarchy = "timestamp"
    actions = None

    def get_readonly_fields(self, request: HttpRequest, obj: t.Any = None) -> list[str]:
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request: HttpRequest) -> bool:
        return False

    def has_change_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False

    def has_delete_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False
