import typing as t

from ninja_extra import ControllerBase

from accounts.models import Actor


class ActorAwareController(ControllerBase):
    def actor(self) -> Actor:
        """Get the authenticated actor for this request."""
        return t.cast(Actor, self.context.request.user)  # type: ignore[union-attr]
