"""Range decision table for half-year assessments.

Rules are evaluated in order and the first match wins:

1. sales < 1 200 000                      -> demotion candidate (range kept)
2. range 3 and sales < 3 000 000          -> step down to range 2
3. sales >= 2 400 000 and range < 3       -> promote to range 3
4. sales >= 1 500 000 and range < 2       -> promote to range 2
5. sales < range threshold and range > 1  -> step down one range
6. otherwise                              -> maintain

Rules 1 to 4 use fixed breakpoints; only rule 5 reads the range's own
``maintain_sales``.  Keep both: merging them changes outcomes.
"""
from __future__ import annotations

from dataclasses import dataclass

DEMOTION_FLOOR = 1_200_000
TOP_RANGE_MAINTAIN = 3_000_000
TOP_RANGE_PROMOTION = 2_400_000
MIDDLE_RANGE_PROMOTION = 1_500_000

TOP_RANGE = 3
MIDDLE_RANGE = 2
BASE_RANGE = 1

# Applied to managers who hold no range yet.
DEFAULT_MAINTAIN_THRESHOLD = DEMOTION_FLOOR

MAINTAINED = "MAINTAINED"
PROMOTED = "PROMOTED"
DEMOTION_CANDIDATE = "DEMOTION_CANDIDATE"


@dataclass(frozen=True)
class RangeDecision:
    is_demotion_candidate: bool
    proposed_range_number: int
    outcome: str


def decide(current_range_number: int, maintain_threshold: int, total_sales: int) -> RangeDecision:
    """Return the range decision for one manager's half-year sales."""
    current = current_range_number

    if total_sales < DEMOTION_FLOOR:
        return RangeDecision(True, current, DEMOTION_CANDIDATE)

    if current == TOP_RANGE and total_sales < TOP_RANGE_MAINTAIN:
        return RangeDecision(False, MIDDLE_RANGE, MAINTAINED)

    if total_sales >= TOP_RANGE_PROMOTION and current < TOP_RANGE:
        return RangeDecision(False, TOP_RANGE, PROMOTED)

    if total_sales >= MIDDLE_RANGE_PROMOTION and current < MIDDLE_RANGE:
        return RangeDecision(False, MIDDLE_RANGE, PROMOTED)

    if total_sales < maintain_threshold and current > BASE_RANGE:
        return RangeDecision(False, current - 1, MAINTAINED)

    return RangeDecision(False, current, MAINTAINED)
