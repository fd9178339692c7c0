from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import DecimalStr


class IngredientBase(BaseModel):
    name: str
    standard_measurement_unit: str
    purchase_pack_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    pack_quantity_in_standard_units: Decimal = Field(gt=0, max_digits=12, decimal_places=3)

    @field_validator("name", "standard_measurement_unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class IngredientCreate(IngredientBase):
    pass


# Full replace: every field is required on update as well
class IngredientUpdate(IngredientBase):
    pass


class Ingredient(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    standard_measurement_unit: str
    purchase_pack_price: DecimalStr
    pack_quantity_in_standard_units: DecimalStr
    cost_per_standard_unit: DecimalStr


class IngredientBulkDelete(BaseModel):
    ids: List[int] = Field(min_length=1)
