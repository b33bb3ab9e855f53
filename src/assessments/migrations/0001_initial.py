import uuid

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ManagerRange",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="cree le")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
                (
                    "range_number",
                    models.PositiveSmallIntegerField(
                        unique=True,
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="numero",
                    ),
                ),
                ("name", models.CharField(max_length=60, verbose_name="nom")),
                (
                    "maintain_sales",
                    models.PositiveBigIntegerField(
                        help_text="Ventes minimales sur un semestre pour rester dans ce range.",
                        verbose_name="ventes de maintien (semestre)",
                    ),
                ),
                ("description", models.TextField(blank=True, default="", verbose_name="description")),
            ],
            options={
                "verbose_name": "range manager",
                "verbose_name_plural": "ranges manager",
                "ordering": ["range_number"],
            },
        ),
    ]
