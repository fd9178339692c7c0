"""Cost derivation rules.

Pure functions over Decimal values. Stored costs are kept at COST_PLACES so a
value computed here compares equal to the value read back from the store.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from .exceptions import InvalidInput, InvalidQuantity

MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")
COST_PLACES = Decimal("0.00000001")

# Total digits of the Numeric columns holding money and quantities
MONEY_DIGITS = 10
QUANTITY_DIGITS = 12

GRAMS_PER_KG = Decimal("1000")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # Go through repr so 15.5 becomes Decimal("15.5"), not its binary expansion
        return Decimal(repr(value))
    return Decimal(value)


def quantize(value, places: Decimal) -> Decimal:
    return to_decimal(value).quantize(places, rounding=ROUND_HALF_UP)


def to_column_scale(field: str, value, places: Decimal, max_digits: int) -> Decimal:
    """Return `value` at the column scale, refusing anything the column cannot hold exactly."""
    value = to_decimal(value)
    if not value.is_finite():
        raise InvalidInput(f"{field} must be a finite number")
    integer_digits = max_digits + places.as_tuple().exponent
    if abs(value) >= Decimal(10) ** integer_digits:
        raise InvalidInput(f"{field} must be less than 10^{integer_digits}")
    scaled = value.quantize(places)
    if scaled != value:
        raise InvalidInput(f"{field} allows at most {-places.as_tuple().exponent} decimal places")
    return scaled


def compute_cost_per_standard_unit(purchase_pack_price, pack_quantity) -> Decimal:
    """Price of one standard unit given a pack price and its size in standard units."""
    quantity = to_decimal(pack_quantity)
    if quantity <= 0:
        raise InvalidQuantity("pack_quantity_in_standard_units", pack_quantity)
    return quantize(to_decimal(purchase_pack_price) / quantity, COST_PLACES)


def compute_calculated_cost(lines: Iterable[Tuple[object, object]]) -> Decimal:
    """Sum of cost_per_standard_unit * quantity over (cost, quantity) pairs."""
    total = Decimal("0")
    for cost_per_standard_unit, quantity in lines:
        total += to_decimal(cost_per_standard_unit) * to_decimal(quantity)
    return quantize(total, COST_PLACES)


def compute_cost_per_portion(calculated_cost, serving_portions) -> Optional[Decimal]:
    if serving_portions is None or serving_portions <= 0:
        return None
    return quantize(to_decimal(calculated_cost) / to_decimal(serving_portions), COST_PLACES)


def compute_cost_per_kg(calculated_cost, final_yield_weight_grams) -> Optional[Decimal]:
    if final_yield_weight_grams is None:
        return None
    grams = to_decimal(final_yield_weight_grams)
    if grams <= 0:
        return None
    return quantize(to_decimal(calculated_cost) / grams * GRAMS_PER_KG, COST_PLACES)
