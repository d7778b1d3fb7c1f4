import typing as t
from datetime import datetime

from ninja import Schema
from pydantic import Field

if t.TYPE_CHECKING:
    from .registry import FeatureFlag


class FlagMetricsSchema(Schema):
    usage_count: int = 0
    last_used_at: datetime | None = None
    error_count: int = 0


class FlagState(Schema):
    """Read-only snapshot of a feature flag.

    Unknown keys produce a fallback snapshot (``is_fallback=True``) instead of ``None``.
    """

    key: str
    enabled: bool = False
    rollout_percentage: int = 0
    description: str = ""
    state: t.Literal["active", "inactive"] = "inactive"
    is_dynamic: bool = False
    is_fallback: bool = False
    last_updated_at: datetime | None = None
    config: dict[str, t.Any] = Field(default_factory=dict)
    metrics: FlagMetricsSchema = Field(default_factory=FlagMetricsSchema)

    @classmethod
    def from_flag(cls, flag: "FeatureFlag") -> "FlagState":
        """Build a detached snapshot of a registry flag."""
        return cls(
            key=flag.key,
            enabled=flag.enabled,
            rollout_percentage=flag.rollout_percentage,
            description=flag.description,
            state=flag.state,
            is_dynamic=flag.is_dynamic,
            last_updated_at=flag.last_updated_at,
            config=dict(flag.config),
            metrics=FlagMetricsSchema(
                usage_count=flag.metrics.usage_count,
                last_used_at=flag.metrics.last_used_at,
                error_count=flag.metrics.error_count,
            ),
        )

    @classmethod
    def fallback(cls, key: str) -> "FlagState":
        """Safe default for an unknown flag."""
        return cls(key=key, description=f"Feature not found: {key}", is_fallback=True)


class FlagUpdateSchema(Schema):
    enabled: bool | None = None
    rollout_percentage: int | None = Field(None, ge=0, le=100)
    description: str | None = None
    config: dict[str, t.Any] | None = None


class RolloutProgressSchema(Schema):
    total: int
    enabled: int
    percentage: float


class FlagHealthSchema(Schema):
    status: t.Literal["healthy"] = "healthy"
    features: list[str]
    enabled_count: int
    rollout_progress: RolloutProgressSchema
