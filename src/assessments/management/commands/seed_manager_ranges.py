"""Seed the default manager ranges."""
from __future__ import annotations

from django.core.management.base import BaseCommand
from django.db import transaction

from assessments.models import ManagerRange

RANGE_DEFINITIONS = [
    {
        "range_number": 1,
        "name": "Range 1",
        "maintain_sales": 1_200_000,
        "description": "Range d'entree des managers.",
    },
    {
        "range_number": 2,
        "name": "Range 2",
        "maintain_sales": 1_500_000,
        "description": "Accessible a partir de 1 500 000 de ventes semestrielles.",
    },
    {
        "range_number": 3,
        "name": "Range 3",
        "maintain_sales": 3_000_000,
        "description": "Accessible a partir de 2 400 000, maintien a 3 000 000.",
    },
]


class Command(BaseCommand):
    help = "Create or update the default manager ranges"

    def add_arguments(self, parser):
        parser.add_argument(
            "--keep-thresholds",
            action="store_true",
            help="Do not overwrite thresholds of ranges that already exist",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0
        for definition in RANGE_DEFINITIONS:
            defaults = {k: v for k, v in definition.items() if k != "range_number"}
            if options["keep_thresholds"]:
                _, created = ManagerRange.objects.get_or_create(
                    range_number=definition["range_number"],
                    defaults=defaults,
                )
            else:
                _, created = ManagerRange.objects.update_or_create(
                    range_number=definition["range_number"],
                    defaults=defaults,
                )
            created_count += int(created)

        self.stdout.write(
            self.style.SUCCESS(
                f"Ranges synchronises: {len(RANGE_DEFINITIONS)} ({created_count} cree(s))."
            )
        )
