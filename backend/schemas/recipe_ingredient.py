from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import DecimalStr


class RecipeIngredient(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    recipe_id: int
    ingredient_id: int
    quantity: DecimalStr
    unit: str


class RecipeIngredientCreate(BaseModel):
    ingredient_id: int
    quantity: Decimal = Field(gt=0, max_digits=12, decimal_places=3)
    unit: str

    @field_validator("unit")
    @classmethod
    def _strip_unit(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("unit is required")
        return v


class RecipeIngredientUpdate(BaseModel):
    quantity: Decimal = Field(gt=0, max_digits=12, decimal_places=3)


class RecipeIngredientDeleted(BaseModel):
    msg: str
    deletedIngredient: RecipeIngredient
