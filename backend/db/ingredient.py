from sqlalchemy import Column, Integer, Numeric, String
from sqlalchemy.orm import validates

from services.costing import (
    MONEY_DIGITS,
    MONEY_PLACES,
    QUANTITY_DIGITS,
    QUANTITY_PLACES,
    compute_cost_per_standard_unit,
    to_column_scale,
)
from .database import Base


class Ingredient(Base):
    """Ingredient bought in packs; cost is normalized to one standard unit."""
    __tablename__ = "ingredients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    standard_measurement_unit = Column(String(20), nullable=False)  # 'g', 'ml', 'pc', ...

    purchase_pack_price = Column(Numeric(10, 2), nullable=False)
    pack_quantity_in_standard_units = Column(Numeric(12, 3), nullable=False)

    # Derived from the two columns above; only ever written by _recompute_cost
    cost_per_standard_unit = Column(Numeric(20, 8), nullable=False)

    @validates("purchase_pack_price", "pack_quantity_in_standard_units")
    def _recompute_cost(self, key, value):
        if key == "purchase_pack_price":
            value = to_column_scale(key, value, MONEY_PLACES, MONEY_DIGITS)
            price, quantity = value, self.pack_quantity_in_standard_units
        else:
            value = to_column_scale(key, value, QUANTITY_PLACES, QUANTITY_DIGITS)
            price, quantity = self.purchase_pack_price, value
            # Validate even when the price has not been assigned yet
            compute_cost_per_standard_unit(0, quantity)

        if price is not None and quantity is not None:
            self._cost_write_allowed = True
            try:
                self.cost_per_standard_unit = compute_cost_per_standard_unit(price, quantity)
            finally:
                self._cost_write_allowed = False
        return value

    @validates("cost_per_standard_unit")
    def _guard_cost(self, key, value):
        if not getattr(self, "_cost_write_allowed", False):
            raise ValueError(
                "cost_per_standard_unit is derived; set purchase_pack_price "
                "and pack_quantity_in_standard_units instead"
            )
        return value

    def set_pack_pricing(self, purchase_pack_price, pack_quantity_in_standard_units):
        """Replace both pricing inputs; the derived cost follows."""
        # Quantity first so an invalid quantity leaves the price untouched
        self.pack_quantity_in_standard_units = pack_quantity_in_standard_units
        self.purchase_pack_price = purchase_pack_price
