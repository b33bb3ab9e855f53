"""Confirm one PENDING manager assessment."""
from django.core.management.base import BaseCommand, CommandError

from accounts.models import User
from assessments.exceptions import AssessmentError
from assessments.services import confirm_assessment


class Command(BaseCommand):
    help = "Confirm a PENDING assessment and apply the proposed range"

    def add_arguments(self, parser):
        parser.add_argument("assessment_id", type=str)
        parser.add_argument("--confirmed-by", type=str, required=True, help="Email of the confirming admin")
        parser.add_argument(
            "--keep-range",
            action="store_true",
            help="Acknowledge the assessment without changing the manager's range",
        )

    def handle(self, *args, **options):
        actor = User.objects.filter(email__iexact=options["confirmed_by"]).first()
        if actor is None:
            raise CommandError(f"Utilisateur introuvable: {options['confirmed_by']}")

        try:
            assessment = confirm_assessment(
                options["assessment_id"],
                confirmed_by=actor,
                apply_range_change=not options["keep_range"],
            )
        except AssessmentError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(f"Evaluation de {assessment.user} confirmee."))
