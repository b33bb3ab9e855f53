"""Run the half-year range assessment for every manager.

Example usage:
    python manage.py run_manager_assessment --year 2025 --half 1
    python manage.py run_manager_assessment --year 2025 --half 2 --executed-by admin@example.com --workers 4
"""
from django.core.management.base import BaseCommand, CommandError

from accounts.models import User
from assessments.engine import ERROR, run_assessment
from assessments.exceptions import PeriodValidationError


class Command(BaseCommand):
    help = "Evaluate every manager for a half-year period (re-runnable: only PENDING rows are rewritten)"

    def add_arguments(self, parser):
        parser.add_argument("--year", type=int, required=True, help="Assessment year (e.g. 2025)")
        parser.add_argument("--half", type=int, required=True, help="1 (January-June) or 2 (July-December)")
        parser.add_argument("--executed-by", type=str, help="Email of the admin running the assessment")
        parser.add_argument("--workers", type=int, help="Worker threads (default: ASSESSMENT_MAX_WORKERS)")

    def handle(self, *args, **options):
        executed_by = None
        email = options.get("executed_by")
        if email:
            executed_by = User.objects.filter(email__iexact=email).first()
            if executed_by is None:
                raise CommandError(f"Utilisateur introuvable: {email}")

        try:
            result = run_assessment(
                options["year"],
                options["half"],
                executed_by=executed_by,
                max_workers=options.get("workers"),
            )
        except PeriodValidationError as exc:
            raise CommandError(str(exc)) from exc

        for line in result.results:
            if line.status == ERROR:
                self.stderr.write(f"  {line.user_name} <{line.user_id}>: {line.error}")

        self.stdout.write(
            self.style.SUCCESS(
                f"{result.period.label}: {result.processed_count} manager(s), "
                f"{result.demotion_candidate_count} candidat(s) a la retrogradation, "
                f"{result.exempt_count} exempte(s), {result.finalized_count} deja finalise(s), "
                f"{result.error_count} erreur(s)."
            )
        )
