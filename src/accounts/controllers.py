"""Administrative endpoints for actors.

Credentials live with the external identity provider; these endpoints only
manage the actor record and its role labels.
"""

from uuid import UUID

from ninja_extra import ControllerBase, api_controller, route, status
from ninja_jwt.authentication import JWTAuth

from accounts import schema
from accounts.models import Actor
from accounts.permissions import HasRole
from accounts.service.actor_service import ActorService
from common.schema import ErrorResponse


@api_controller("/actors", auth=JWTAuth(), permissions=[HasRole("admin")], tags=["Actors"])
class ActorController(ControllerBase):
    @route.post(
        "/",
        url_name="create_actor",
        response={status.HTTP_201_CREATED: schema.ActorSchema, 400: ErrorResponse},
    )
    def create_actor(self, payload: schema.ActorCreateSchema) -> tuple[int, Actor]:
        """Create an actor.

        Role labels are checked against the active vocabulary: during a role rename only
        one of the legacy and new names is accepted, depending on the migration flag.
        """
        actor = ActorService().create_actor(
            username=payload.username,
            email=payload.email or "",
            first_name=payload.first_name,
            last_name=payload.last_name,
            role=payload.role or "",
            roles=payload.roles,
        )
        return status.HTTP_201_CREATED, actor

    @route.put(
        "/{actor_id}/role",
        url_name="update_actor_role",
        response={200: schema.ActorSchema, 400: ErrorResponse, 404: ErrorResponse},
    )
    def update_role(self, actor_id: UUID, payload: schema.ActorRoleUpdateSchema) -> Actor:
        """Replace an actor's primary role and, optionally, its additional roles."""
        return ActorService().update_roles(actor_id, role=payload.role, roles=payload.roles)
