"""Feature flag and role migration configuration.

FEATURE_FLAGS seeds the in-process registry at start-up. Flags are process-local:
every instance seeds from the same environment, runtime changes made through the
admin surface are not replicated to other instances.
"""

from decouple import config

ROLE_MIGRATION_FLAG = "role-migration"
VENUE_REALTIME_UPDATES_FLAG = "venue-realtime-updates"
PASS_EXPIRY_SWEEP_FLAG = "pass-expiry-sweep"

_role_migration_enabled = config("ROLE_MIGRATION_ENABLED", default=False, cast=bool)

FEATURE_FLAGS: dict[str, dict[str, object]] = {
    ROLE_MIGRATION_FLAG: {
        "enabled": _role_migration_enabled,
        "rollout_percentage": 100 if _role_migration_enabled else 0,
        "description": "Rename the door verifier role from 'bartender' to 'staff'",
    },
    VENUE_REALTIME_UPDATES_FLAG: {
        "enabled": config("VENUE_REALTIME_UPDATES_ENABLED", default=True, cast=bool),
        "rollout_percentage": config("VENUE_REALTIME_UPDATES_ROLLOUT", default=100, cast=int),
        "description": "Push pass purchases and redemptions to the venue update channel",
    },
    PASS_EXPIRY_SWEEP_FLAG: {
        "enabled": config("PASS_EXPIRY_SWEEP_ENABLED", default=True, cast=bool),
        "rollout_percentage": 100,
        "description": "Periodically mark overdue active passes as expired",
    },
}

# Raise instead of auto-registering unknown flags. Meant for test and staging environments.
FEATURE_FLAGS_STRICT = config("FEATURE_FLAGS_STRICT", default=False, cast=bool)

# Baseline label every actor carries. Never counts as evidence of an elevated role.
BASELINE_ROLE = "customer"

# Labels that are not part of any migration.
ACTOR_ROLES = (BASELINE_ROLE, "owner", "admin")

# Live renames: while the flag is enabled only `new` may be assigned, otherwise only `legacy`.
ROLE_MIGRATIONS = [
    {"flag_key": ROLE_MIGRATION_FLAG, "legacy": "bartender", "new": "staff"},
]
