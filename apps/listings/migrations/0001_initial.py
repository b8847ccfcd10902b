import apps.listings.models
from decimal import Decimal
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Listing",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True, max_length=1000)),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("currency", models.CharField(default=apps.listings.models.default_currency, max_length=3)),
                (
                    "rent_duration",
                    models.CharField(
                        choices=[("monthly", "Monthly"), ("semester", "Semester"), ("yearly", "Yearly")],
                        default="monthly",
                        max_length=20,
                    ),
                ),
                (
                    "total_rooms",
                    models.PositiveIntegerField(help_text="Room capacity, fixed when the listing is approved."),
                ),
                (
                    "available_rooms",
                    models.PositiveIntegerField(blank=True, help_text="Only changed through the inventory store."),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Awaiting moderation"), ("approved", "Approved"), ("rejected", "Rejected")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Listing",
                "verbose_name_plural": "Listings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "status"], name="listing_owner_status_idx"),
                    models.Index(fields=["status", "price"], name="listing_status_price_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(available_rooms__gte=0),
                        name="listing_available_rooms_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(available_rooms__lte=models.F("total_rooms")),
                        name="listing_available_rooms_within_capacity",
                    ),
                ],
            },
        ),
    ]
