"""In-process feature flag registry.

The registry is read-mostly: lookups take no lock, the rare administrative
writes (and auto-registration of unknown keys) serialize on a single lock.
State lives in this process only and is not synchronized across instances.
"""

import threading
import typing as t
from dataclasses import dataclass, field
from datetime import datetime

import structlog
from django.utils import timezone

from common.exceptions import NotFoundError, ValidationError

from .bucketing import in_rollout
from .schema import FlagState

logger = structlog.get_logger(__name__)

_MUTABLE_FIELDS = frozenset({"enabled", "rollout_percentage", "description", "config"})


@dataclass
class FlagMetrics:
    usage_count: int = 0
    last_used_at: datetime | None = None
    error_count: int = 0


@dataclass
class FeatureFlag:
    key: str
    enabled: bool = False
    rollout_percentage: int = 0
    description: str = ""
    is_dynamic: bool = False
    config: dict[str, t.Any] = field(default_factory=dict)
    metrics: FlagMetrics = field(default_factory=FlagMetrics)
    last_updated_at: datetime = field(default_factory=timezone.now)

    @property
    def state(self) -> t.Literal["active", "inactive"]:
        """Derived from ``enabled`` so the two can never disagree."""
        return "active" if self.enabled else "inactive"


def _validate_rollout(key: str, value: t.Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise ValidationError("InvalidRolloutPercentage", f"rollout_percentage for {key} must be an integer 0-100.")
    return value


class FeatureFlagRegistry:
    """Holds flag definitions and answers rollout questions."""

    def __init__(
        self,
        defaults: t.Mapping[str, t.Mapping[str, t.Any]] | None = None,
        *,
        strict: bool = False,
    ) -> None:
        """Create the registry and seed it with default flag definitions.

        Args:
            defaults: Flag key to config mapping registered as non-dynamic flags.
            strict: Raise NotFoundError on unknown lookups instead of auto-registering.
        """
        self.strict = strict
        self._flags: dict[str, FeatureFlag] = {}
        self._lock = threading.Lock()
        for key, config in (defaults or {}).items():
            self._flags[key] = self._build(key, config, is_dynamic=False)
            logger.info(
                "feature_flag_initialized",
                key=key,
                enabled=self._flags[key].enabled,
                rollout_percentage=self._flags[key].rollout_percentage,
            )
        enabled = [key for key, flag in self._flags.items() if flag.enabled]
        logger.info("feature_flags_initialized", flag_count=len(self._flags), enabled_flags=enabled, strict=strict)

    @classmethod
    def from_settings(cls) -> "FeatureFlagRegistry":
        """Build a registry from FEATURE_FLAGS and FEATURE_FLAGS_STRICT."""
        from django.conf import settings

        return cls(settings.FEATURE_FLAGS, strict=settings.FEATURE_FLAGS_STRICT)

    def _build(self, key: str, config: t.Mapping[str, t.Any], *, is_dynamic: bool) -> FeatureFlag:
        unknown = set(config) - _MUTABLE_FIELDS
        if unknown:
            raise ValidationError("UnknownFlagField", f"Unknown flag fields for {key}: {sorted(unknown)}")
        return FeatureFlag(
            key=key,
            enabled=bool(config.get("enabled", False)),
            rollout_percentage=_validate_rollout(key, config.get("rollout_percentage", 0)),
            description=config.get("description") or f"Dynamically registered feature: {key}",
            is_dynamic=is_dynamic,
            config=dict(config.get("config") or {}),
        )

    # --- reads ---

    def is_enabled(self, key: str, context: t.Mapping[str, t.Any] | None = None) -> bool:
        """Whether the flag is on for this context.

        Unknown keys are auto-registered as disabled and answer False, unless the
        registry is strict, in which case NotFoundError is raised.
        """
        flag = self._flags.get(key)
        if flag is None:
            if self.strict:
                raise NotFoundError("UnknownFlag", f"Feature flag {key} is not registered.")
            logger.warning(
                "feature_flag_not_found",
                key=key,
                context=dict(context or {}),
                flag_count=len(self._flags),
                available_flags=sorted(self._flags),
            )
            self.register_feature(key, description=f"Automatically registered missing feature: {key}")
            return False

        # best-effort counters
        flag.metrics.usage_count += 1
        flag.metrics.last_used_at = timezone.now()

        if not flag.enabled or flag.rollout_percentage == 0:
            return False
        if flag.rollout_percentage == 100:
            return True
        result = in_rollout(key, context, flag.rollout_percentage)
        logger.debug(
            "feature_flag_rollout_check",
            key=key,
            rollout_percentage=flag.rollout_percentage,
            in_rollout=result,
        )
        return result

    def get_feature_state(self, key: str) -> FlagState:
        """Snapshot of a flag, or a fallback snapshot when the key is unknown."""
        flag = self._flags.get(key)
        if flag is None:
            logger.warning("feature_flag_state_not_found", key=key, available_flags=sorted(self._flags))
            return FlagState.fallback(key)
        return FlagState.from_flag(flag)

    def list_features(self) -> dict[str, FlagState]:
        """Snapshots of every registered flag, keyed by flag key."""
        return {key: FlagState.from_flag(flag) for key, flag in list(self._flags.items())}

    def feature_exists(self, key: str) -> bool:
        return key in self._flags

    def health(self) -> dict[str, t.Any]:
        """Summary of how many flags are registered and enabled."""
        flags = list(self._flags.values())
        enabled_count = sum(1 for flag in flags if flag.enabled)
        return {
            "status": "healthy",
            "features": [flag.key for flag in flags],
            "enabled_count": enabled_count,
            "rollout_progress": {
                "total": len(flags),
                "enabled": enabled_count,
                "percentage": (enabled_count / len(flags)) * 100 if flags else 0.0,
            },
        }

    # --- writes ---

    def register_feature(self, key: str, **config: t.Any) -> FlagState:
        """Register a new flag. An existing flag is left untouched and returned as is."""
        with self._lock:
            existing = self._flags.get(key)
            if existing is not None:
                logger.warning("feature_flag_already_registered", key=key)
                return FlagState.from_flag(existing)
            flag = self._build(key, config, is_dynamic=True)
            self._flags[key] = flag
        logger.info(
            "feature_flag_registered",
            key=key,
            enabled=flag.enabled,
            rollout_percentage=flag.rollout_percentage,
        )
        return FlagState.from_flag(flag)

    def set_feature_state(self, key: str, **changes: t.Any) -> FlagState:
        """Upsert a flag: create it when absent, merge the given fields otherwise."""
        with self._lock:
            flag = self._flags.get(key)
            if flag is None:
                created = True
                flag = self._build(key, changes, is_dynamic=True)
                self._flags[key] = flag
            else:
                created = False
                unknown = set(changes) - _MUTABLE_FIELDS
                if unknown:
                    raise ValidationError("UnknownFlagField", f"Unknown flag fields for {key}: {sorted(unknown)}")
                previous = {"enabled": flag.enabled, "rollout_percentage": flag.rollout_percentage}
                if "rollout_percentage" in changes:
                    flag.rollout_percentage = _validate_rollout(key, changes["rollout_percentage"])
                if "enabled" in changes:
                    flag.enabled = bool(changes["enabled"])
                if changes.get("description"):
                    flag.description = changes["description"]
                if changes.get("config") is not None:
                    flag.config = {**flag.config, **changes["config"]}
                flag.last_updated_at = timezone.now()
        if created:
            logger.warning("feature_flag_created_on_update", key=key, enabled=flag.enabled)
        else:
            logger.info(
                "feature_flag_updated",
                key=key,
                previous=previous,
                enabled=flag.enabled,
                rollout_percentage=flag.rollout_percentage,
                state=flag.state,
            )
        return FlagState.from_flag(flag)

    def record_error(self, key: str) -> None:
        """Count an error observed by code running behind the flag."""
        flag = self._flags.get(key)
        if flag is not None:
            flag.metrics.error_count += 1

    def remove_feature(self, key: str) -> bool:
        """Drop a flag. Only meant for cleaning up flags created by tests."""
        with self._lock:
            removed = self._flags.pop(key, None) is not None
        if removed:
            logger.info("feature_flag_removed", key=key)
        return removed


def get_registry() -> FeatureFlagRegistry:
    """The registry owned by the flags app for this process."""
    from django.apps import apps

    return t.cast(FeatureFlagRegistry, apps.get_app_config("flags").registry)  # type: ignore[attr-defined]
