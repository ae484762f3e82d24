from decimal import Decimal

import pytest

from cbledger import engine_fueleu
from cbledger.models import Baseline, Route


@pytest.mark.parametrize(
    "year, expected",
    [
        (2020, Decimal("89.3368")),
        (2024, Decimal("89.3368")),
        (2025, Decimal("89.3368")),
        (2029, Decimal("89.3368")),
        (2030, Decimal("85.6904")),
        (2035, Decimal("77.9418")),
        (2050, Decimal("18.232")),
        (2070, Decimal("18.232")),
    ],
)
def test_target_intensity_steps(year, expected):
    assert engine_fueleu.target_intensity(year) == expected


def test_compliance_balance_sign():
    surplus = engine_fueleu.compliance_balance(Decimal("85.5"), Decimal("10"), 2025)
    deficit = engine_fueleu.compliance_balance(Decimal("92.3"), Decimal("10"), 2025)

    assert surplus == (Decimal("89.3368") - Decimal("85.5")) * Decimal("410000")
    assert deficit < 0


def test_percent_difference_and_compliance():
    route = Route("R2", "Tanker", "HFO", 2024, Decimal("92.3"), Decimal("1"), Decimal("1"), Decimal("1"))
    baseline = Baseline("R1", 2024, Decimal("91.16"), Decimal("1"), Decimal("1"), Decimal("1"))

    diff = engine_fueleu.percent_difference(route, baseline)

    assert diff.quantize(Decimal("0.0001")) == Decimal("1.2505")
    assert not engine_fueleu.is_compliant(route)
