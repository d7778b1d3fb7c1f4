from django.apps import AppConfig


class PassesConfig(AppConfig):
    """Configuration for the passes app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "passes"
    verbose_name = "Passes"
