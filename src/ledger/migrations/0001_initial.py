import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LifecycleEvent",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_id", models.UUIDField()),
                (
                    "order_type",
                    models.CharField(choices=[("pass", "Pass"), ("drink", "Drink")], default="pass", max_length=10),
                ),
                ("venue_id", models.UUIDField()),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("creation", "Creation"),
                            ("status_change", "Status change"),
                            ("verification", "Verification"),
                            ("completion", "Completion"),
                        ],
                        max_length=20,
                    ),
                ),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                ("processing_time_ms", models.PositiveIntegerField(blank=True, null=True)),
                ("subtotal", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("service_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("tip_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("total", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("currency", models.CharField(blank=True, max_length=3)),
                (
                    "items",
                    models.JSONField(
                        blank=True, default=list, help_text="Item or tier snapshot at the time of the event"
                    ),
                ),
                ("verification_method", models.CharField(blank=True, max_length=20)),
                (
                    "verified_by",
                    models.CharField(blank=True, help_text="Role label of the verifying actor", max_length=32),
                ),
                ("verifier_id", models.UUIDField(blank=True, null=True)),
                ("verification_attempts", models.PositiveIntegerField(blank=True, null=True)),
                ("is_redeemed", models.BooleanField(blank=True, null=True)),
                ("error", models.CharField(blank=True, max_length=255)),
                ("metadata", models.JSONField(blank=True, default=dict)),
            ],
            options={
                "ordering": ["timestamp"],
                "indexes": [
                    models.Index(fields=["venue_id", "timestamp"], name="ledger_venue_time_idx"),
                    models.Index(fields=["verified_by", "timestamp"], name="ledger_verifier_time_idx"),
                    models.Index(fields=["order_id", "event_type"], name="ledger_order_event_idx"),
                ],
            },
        ),
    ]
