import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("rentals", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ProductReturn",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("return_date", models.DateTimeField()),
                ("return_location", models.CharField(max_length=255)),
                (
                    "return_status",
                    models.CharField(
                        choices=[
                            ("initiated", "Initiated"),
                            ("in_progress", "In progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="initiated",
                        max_length=20,
                    ),
                ),
                ("condition_notes", models.TextField(blank=True)),
                ("customer_signature", models.TextField(blank=True)),
                ("owner_confirmation", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "rental_request",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="product_return",
                        to="rentals.rentalrequest",
                    ),
                ),
            ],
            options={
                "verbose_name": "Product return",
                "verbose_name_plural": "Product returns",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="DamageAssessment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("damage_type", models.CharField(max_length=100)),
                (
                    "severity",
                    models.CharField(
                        choices=[("minor", "Minor"), ("moderate", "Moderate"), ("major", "Major")],
                        max_length=20,
                    ),
                ),
                ("description", models.TextField()),
                (
                    "estimated_cost",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("approved", models.BooleanField(default=False)),
                ("assessment_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "assessed_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="damage_assessments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product_return",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="damage_assessment",
                        to="returns.productreturn",
                    ),
                ),
            ],
            options={
                "verbose_name": "Damage assessment",
                "verbose_name_plural": "Damage assessments",
                "ordering": ["-assessment_date"],
            },
        ),
        migrations.CreateModel(
            name="DamagePhoto",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("photo_url", models.URLField(max_length=500)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("uploaded_at", models.DateTimeField(auto_now_add=True)),
                (
                    "assessment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="photos",
                        to="returns.damageassessment",
                    ),
                ),
            ],
            options={
                "ordering": ["uploaded_at"],
            },
        ),
    ]
