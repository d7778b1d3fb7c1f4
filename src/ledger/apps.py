from django.apps import AppConfig


class LedgerConfig(AppConfig):
    """Configuration for the lifecycle event ledger."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "ledger"
    verbose_name = "Lifecycle Ledger"
