"""Half-year sales aggregation from the monthly sales table."""
from __future__ import annotations

from dataclasses import dataclass, field

from assessments.periods import AssessmentPeriod, months_in_period


@dataclass
class SalesSummary:
    total_sales: int = 0
    total_insured_count: int = 0
    monthly_breakdown: list[dict] = field(default_factory=list)


def aggregate_manager_sales(user_id, period: AssessmentPeriod) -> SalesSummary:
    """Sum a manager's monthly records over ``period``.

    Months without a record are left out of the breakdown; totals are plain
    sums of the rows found.
    """
    from assessments.models import ManagerMonthlySales

    rows = (
        ManagerMonthlySales.objects.filter(
            user_id=user_id,
            month__in=months_in_period(period),
        )
        .order_by("month")
        .values("month", "sales_amount", "insured_count")
    )

    summary = SalesSummary()
    for row in rows:
        summary.total_sales += row["sales_amount"]
        summary.total_insured_count += row["insured_count"]
        summary.monthly_breakdown.append(
            {
                "month": row["month"],
                "sales_amount": row["sales_amount"],
                "insured_count": row["insured_count"],
            }
        )
    return summary
