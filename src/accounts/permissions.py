import typing as t

from django.http import HttpRequest
from ninja_extra import ControllerBase
from ninja_extra.permissions import BasePermission

from accounts.roles import build_role_resolver


class HasRole(BasePermission):
    """Grants access when the authenticated actor satisfies any of the given roles.

    Role migrations are honored, so a legacy label passes a check for its new name
    (and the other way round) while the migration flag is enabled.
    """

    def __init__(self, *roles: str) -> None:
        """Store the accepted roles."""
        self.roles = frozenset(roles)

    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Check the request user against the accepted roles."""
        actor = t.cast(t.Any, request.user)
        if not actor or not actor.is_authenticated:
            return False
        return build_role_resolver().has_role(actor, self.roles)
