from ninja_extra import ControllerBase, api_controller, route
from ninja_jwt.authentication import JWTAuth

from accounts.permissions import HasRole
from common.schema import ErrorResponse

from . import schema
from .registry import FeatureFlagRegistry, get_registry


@api_controller("/flags", auth=JWTAuth(), permissions=[HasRole("admin")], tags=["Feature Flags"])
class FeatureFlagController(ControllerBase):
    """Operational surface for the in-process feature flag registry.

    Changes apply to the instance that serves the request only.
    """

    def registry(self) -> FeatureFlagRegistry:
        return get_registry()

    @route.get("/", url_name="list_flags", response=list[schema.FlagState])
    def list_flags(self) -> list[schema.FlagState]:
        """List every registered flag with its usage metrics, sorted by key."""
        features = self.registry().list_features()
        return [features[key] for key in sorted(features)]

    @route.get("/health", url_name="flags_health", response=schema.FlagHealthSchema)
    def health(self) -> dict[str, object]:
        """Report how many flags are registered and enabled."""
        return self.registry().health()

    @route.get("/{key}", url_name="get_flag", response=schema.FlagState)
    def get_flag(self, key: str) -> schema.FlagState:
        """Get one flag. Unknown keys return a disabled fallback with ``is_fallback=true``."""
        return self.registry().get_feature_state(key)

    @route.put("/{key}", url_name="set_flag", response={200: schema.FlagState, 400: ErrorResponse})
    def set_flag(self, key: str, payload: schema.FlagUpdateSchema) -> schema.FlagState:
        """Create or update a flag. Only the given fields change."""
        return self.registry().set_feature_state(key, **payload.model_dump(exclude_unset=True, exclude_none=True))
