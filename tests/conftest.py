from datetime import datetime, timezone
from itertools import count

import pytest

from accounts.models import User
from assessments.models import ManagerMonthlySales, ManagerRange

# First half of 2025 has just closed.
ASSESSMENT_NOW = datetime(2025, 7, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return ASSESSMENT_NOW


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def fp_user(db):
    return User.objects.create_user(
        email="fp@test.com",
        password="testpass123",
        first_name="Conseiller",
        last_name="User",
        role=User.Role.FP,
    )


@pytest.fixture
def ranges(db):
    return {
        1: ManagerRange.objects.create(range_number=1, name="Range 1", maintain_sales=1_200_000),
        2: ManagerRange.objects.create(range_number=2, name="Range 2", maintain_sales=1_500_000),
        3: ManagerRange.objects.create(range_number=3, name="Range 3", maintain_sales=3_000_000),
    }


@pytest.fixture
def make_manager(db, ranges):
    sequence = count(1)

    def _make(range_number=1, **extra):
        n = next(sequence)
        fields = {
            "email": f"manager{n}@test.com",
            "password": "testpass123",
            "first_name": "Manager",
            "last_name": f"Test{n:03d}",
            "member_id": f"M{n:05d}",
            "role": User.Role.MANAGER,
            "manager_range": ranges[range_number] if range_number else None,
            "manager_promoted_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
        fields.update(extra)
        return User.objects.create_user(**fields)

    return _make


@pytest.fixture
def manager_user(make_manager):
    return make_manager(range_number=1, email="manager@test.com")


@pytest.fixture
def record_sales(db):
    """Spread ``total`` over the first ``months`` months of a half-year."""

    def _record(user, total, *, year=2025, half=1, months=6, insured_per_month=2):
        first_month = 1 if half == 1 else 7
        share, remainder = divmod(total, months)
        for i in range(months):
            ManagerMonthlySales.objects.create(
                user=user,
                month=f"{year}-{first_month + i:02d}",
                sales_amount=share + (remainder if i == 0 else 0),
                insured_count=insured_per_month,
            )

    return _record
