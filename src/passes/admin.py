import typing as t

from django.contrib import admin
from django.http import HttpRequest
from unfold.admin import ModelAdmin, TabularInline

from . import models


@admin.register(models.Venue)
class VenueAdmin(ModelAdmin):  # type: ignore[misc]
    list_display = ["name", "verifier_role", "created_at"]
    search_fields = ["name"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(models.PassOffering)
class PassOfferingAdmin(ModelAdmin):  # type: ignore[misc]
    list_display = ["venue", "pass_type", "price", "currency", "is_available"]
    list_filter = ["is_available", "pass_type"]
    search_fields = ["venue__name", "pass_type"]
    autocomplete_fields = ["venue"]


class PassStatusChangeInline(TabularInline):  # type: ignore[misc]
    model = models.PassStatusChange
    extra = 0
    can_delete = False
    fields = ["status", "timestamp", "updated_by", "note"]
    readonly_fields = fields

    def has_add_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False


@admin.register(models.Pass)
class PassAdmin(ModelAdmin):  # type: ignore[misc]
    """Read-only: passes only change through the pass coordinator."""

    list_display = ["id", "venue", "actor", "pass_type", "purchase_price", "status", "is_redeemed", "expiry_date"]
    list_filter = ["status", "is_redeemed", "pass_type", "venue"]
    search_fields = ["id", "actor__username", "venue__name"]
    date_hierarchy = "purchase_date"
    inlines = [PassStatusChangeInline]

    def get_readonly_fields(self, request: HttpRequest, obj: t.Any = None) -> list[str]:
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request: HttpRequest) -> bool:
        return False

    def has_delete_permission(self, request: HttpRequest, obj: t.Any = None) -> bool:
        return False
