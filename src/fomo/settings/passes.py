from decimal import Decimal

from decouple import config

DEFAULT_CURRENCY = config("DEFAULT_CURRENCY", default="USD")

PASS_VALIDITY_HOURS = config("PASS_VALIDITY_HOURS", default=24, cast=int)
PASS_SERVICE_FEE_PERCENT = config("PASS_SERVICE_FEE_PERCENT", cast=Decimal, default="0")
PASS_VERIFICATION_CODE_LENGTH = config("PASS_VERIFICATION_CODE_LENGTH", default=6, cast=int)
DEFAULT_VERIFIER_ROLE = config("DEFAULT_VERIFIER_ROLE", default="staff")

# External venue update channel. Empty disables delivery.
VENUE_UPDATES_WEBHOOK_URL = config("VENUE_UPDATES_WEBHOOK_URL", default="")
VENUE_UPDATES_TIMEOUT_SECONDS = config("VENUE_UPDATES_TIMEOUT_SECONDS", default=5.0, cast=float)
