"""Demote the manager behind a demotion-candidate assessment."""
from django.core.management.base import BaseCommand, CommandError

from accounts.models import User
from assessments.exceptions import AssessmentError
from assessments.services import demote_manager


class Command(BaseCommand):
    help = "Demote a manager to FP from a PENDING demotion-candidate assessment (irreversible)"

    def add_arguments(self, parser):
        parser.add_argument("assessment_id", type=str)
        parser.add_argument("--demoted-by", type=str, required=True, help="Email of the admin")

    def handle(self, *args, **options):
        actor = User.objects.filter(email__iexact=options["demoted_by"]).first()
        if actor is None:
            raise CommandError(f"Utilisateur introuvable: {options['demoted_by']}")

        try:
            assessment = demote_manager(options["assessment_id"], demoted_by=actor)
        except AssessmentError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(f"{assessment.user} retrograde en FP."))
