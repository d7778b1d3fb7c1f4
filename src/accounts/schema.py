"""Schema for accounts module."""

from ninja import ModelSchema, Schema
from pydantic import UUID4, EmailStr, Field

from common.schema import OneToSixtyFourString, StrippedString

from .models import Actor


class ActorSchema(ModelSchema):
    id: UUID4
    roles: list[str]

    class Meta:
        model = Actor
        fields = ["username", "email", "first_name", "last_name", "role", "is_active"]


class ActorCreateSchema(Schema):
    username: OneToSixtyFourString
    email: EmailStr | None = None
    first_name: StrippedString = ""
    last_name: StrippedString = ""
    role: OneToSixtyFourString | None = Field(None, description="Primary role, defaults to the baseline role.")
    roles: list[OneToSixtyFourString] = Field(default_factory=list, description="Additional role labels.")


class ActorRoleUpdateSchema(Schema):
    role: OneToSixtyFourString
    roles: list[OneToSixtyFourString] | None = Field(
        None, description="Replaces the additional role labels when given."
    )
