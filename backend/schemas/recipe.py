from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from db.database import MAX_ROW_ID

from .types import DecimalStr


class RecipeCreate(BaseModel):
    name: str
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("A recipe name is required")
        return v


class RecipeUpdate(RecipeCreate):
    pass


class RecipeYieldUpdate(BaseModel):
    """Only the fields present in the request body are written."""
    final_yield_weight_grams: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    serving_portions: Optional[int] = Field(default=None, ge=0, le=MAX_ROW_ID)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class Recipe(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: DecimalStr
    final_yield_weight_grams: Optional[DecimalStr] = None
    serving_portions: Optional[int] = None
    created_at: Optional[datetime] = None


class RecipeSummary(BaseModel):
    id: int
    name: str
    price: DecimalStr
    calculated_cost: DecimalStr


class RecipePage(BaseModel):
    items: List[RecipeSummary]
    total: int


class RecipeLine(BaseModel):
    ingredient_id: int
    name: str
    quantity: DecimalStr
    unit: str


class RecipeDetail(BaseModel):
    id: int
    name: str
    selling_price: DecimalStr
    final_yield_weight_grams: Optional[DecimalStr] = None
    serving_portions: Optional[int] = None
    calculated_cost: DecimalStr
    cost_per_portion: Optional[DecimalStr] = None
    cost_per_kg: Optional[DecimalStr] = None
    ingredients: List[RecipeLine]


class RecipeBulkDelete(BaseModel):
    ids: List[int] = Field(min_length=1)


class RecipeDeleted(BaseModel):
    msg: str
    deletedRecipe: Recipe


class BulkDeleted(BaseModel):
    msg: str
    deleted: int
