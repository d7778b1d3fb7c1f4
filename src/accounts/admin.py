"""Admin interface for actors."""

import typing as t

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from django.contrib.auth.forms import UserChangeForm
from django.core.exceptions import ValidationError as DjangoValidationError
from unfold.admin import ModelAdmin

from accounts.models import Actor
from accounts.roles import build_role_gate
from common.exceptions import ValidationError


class ActorAdminForm(UserChangeForm):  # type: ignore[type-arg]
    """Runs role labels through the vocabulary gate, like the API does."""

    class Meta(UserChangeForm.Meta):
        model = Actor

    def clean(self) -> dict[str, t.Any]:
        cleaned = super().clean() or {}
        role = cleaned.get("role")
        if role:
            existing = [self.instance.role, *(self.instance.roles or ())] if self.instance.pk else []
            try:
                build_role_gate().validate(role, cleaned.get("roles") or (), existing=existing)
            except ValidationError as e:
                raise DjangoValidationError({"role": e.message}) from e
        return cleaned


@admin.register(Actor)
class ActorAdmin(UserAdmin, ModelAdmin):  # type: ignore[type-arg,misc]
    form = ActorAdminForm

    list_display = ["username", "email", "role", "roles", "is_staff", "is_active", "date_joined"]
    list_filter = ["role", "is_staff", "is_superuser", "is_active", "date_joined"]
    search_fields = ["username", "first_name", "last_name", "email"]
    ordering = ["-date_joined"]
    readonly_fields = ["id", "date_joined", "last_login"]

    fieldsets = (
        (
            "Identity",
            {
                "fields": (
                    "id",
                    ("username", "email"),
                    ("first_name", "last_name"),
                )
            },
        ),
        (
            "Roles",
            {
                "fields": ("role", "roles"),
            },
        ),
        (
            "Permissions",
            {
                "fields": (
                    ("is_active", "is_staff", "is_superuser"),
                    ("date_joined", "last_login"),
                ),
                "classes": ["collapse"],
            },
        ),
    )
