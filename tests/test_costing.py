from decimal import Decimal

import pytest

from services.costing import (
    MONEY_DIGITS,
    MONEY_PLACES,
    QUANTITY_DIGITS,
    QUANTITY_PLACES,
    compute_calculated_cost,
    compute_cost_per_kg,
    compute_cost_per_portion,
    compute_cost_per_standard_unit,
    to_column_scale,
)
from services.exceptions import InvalidInput, InvalidQuantity


def test_cost_per_standard_unit_is_price_over_pack_quantity():
    assert compute_cost_per_standard_unit(Decimal("15.50"), Decimal("5000")) == Decimal("0.0031")
    assert compute_cost_per_standard_unit(Decimal("3.60"), Decimal("12")) == Decimal("0.3")


def test_cost_per_standard_unit_rounds_to_eight_places():
    assert compute_cost_per_standard_unit(Decimal("1"), Decimal("3")) == Decimal("0.33333333")


def test_cost_per_standard_unit_accepts_floats_without_binary_drift():
    assert compute_cost_per_standard_unit(15.5, 5000) == Decimal("0.0031")


@pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1"), 0, -0.5])
def test_non_positive_pack_quantity_is_rejected(quantity):
    with pytest.raises(InvalidQuantity) as excinfo:
        compute_cost_per_standard_unit(Decimal("10"), quantity)
    assert isinstance(excinfo.value, InvalidInput)
    assert excinfo.value.status_code == 400


def test_calculated_cost_sums_line_products():
    lines = [
        (Decimal("0.0031"), Decimal("1000")),
        (Decimal("0.3"), Decimal("2")),
        (Decimal("0.00115"), Decimal("500")),
    ]
    assert compute_calculated_cost(lines) == Decimal("3.10") + Decimal("0.6") + Decimal("0.575")


def test_calculated_cost_of_no_lines_is_zero():
    assert compute_calculated_cost([]) == 0


def test_cost_per_portion():
    assert compute_cost_per_portion(Decimal("3.10"), 4) == Decimal("0.775")


@pytest.mark.parametrize("portions", [None, 0, -2])
def test_cost_per_portion_undefined_without_portions(portions):
    assert compute_cost_per_portion(Decimal("3.10"), portions) is None


def test_cost_per_kg():
    assert compute_cost_per_kg(Decimal("3.10"), Decimal("1000")) == Decimal("3.10")
    assert compute_cost_per_kg(Decimal("3.10"), Decimal("1500")) == Decimal("2.06666667")


@pytest.mark.parametrize("grams", [None, Decimal("0"), Decimal("-5")])
def test_cost_per_kg_undefined_without_yield_weight(grams):
    assert compute_cost_per_kg(Decimal("3.10"), grams) is None


def test_column_scale_keeps_exact_values():
    assert to_column_scale("price", Decimal("15.5"), MONEY_PLACES, MONEY_DIGITS) == Decimal("15.50")
    assert to_column_scale("quantity", 0.5, QUANTITY_PLACES, QUANTITY_DIGITS) == Decimal("0.500")


@pytest.mark.parametrize(
    "value, message",
    [
        (Decimal("0.0005"), "decimal places"),
        (Decimal("1000000000"), "less than"),
        (Decimal("NaN"), "finite"),
    ],
)
def test_column_scale_refuses_values_the_column_would_alter(value, message):
    with pytest.raises(InvalidInput) as exc:
        to_column_scale("pack_quantity_in_standard_units", value, QUANTITY_PLACES, QUANTITY_DIGITS)
    assert message in exc.value.message
