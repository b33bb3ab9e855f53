"""Errors raised by the assessment engine.

Database errors are not wrapped: they propagate as Django's
``DatabaseError`` family.
"""


class AssessmentError(Exception):
    """Base class for assessment business errors."""


class AssessmentNotFound(AssessmentError):
    """The referenced assessment (or manager / range) does not exist."""


class InvalidAssessmentState(AssessmentError):
    """Confirm or demote attempted on an assessment in the wrong state."""


class PeriodValidationError(AssessmentError, ValueError):
    """Malformed period input, e.g. a half outside {1, 2}."""
