from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import T0
from laundry.ordering.delivery import expected_delivery


@pytest.mark.parametrize(
    "services, days",
    [
        ([{"name": "Wash & Fold"}], 2),
        ([], 2),
        ([{"name": "Ironing"}, {"name": None}], 2),
        ([{"name": "Dry Cleaning"}], 3),
        ([{"name": "Wash & Fold"}, {"name": "Express STAIN REMOVAL"}], 3),
    ],
)
def test_turnaround(services, days):
    assert expected_delivery(services, T0) == T0 + timedelta(days=days)
