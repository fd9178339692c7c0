from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from schemas.ingredient import Ingredient, IngredientBulkDelete, IngredientCreate, IngredientUpdate
from db.database import get_async_session
from services import ingredient_service
from typing import Dict, List

router = APIRouter()


@router.get("/", response_model=List[Ingredient])
async def get_ingredients(db: AsyncSession = Depends(get_async_session)):
    """Get all ingredients, ordered by name"""
    return await ingredient_service.list_ingredients(db)


@router.get("/{ingredient_id}", response_model=Ingredient)
async def get_ingredient(ingredient_id: int, db: AsyncSession = Depends(get_async_session)):
    """Get an ingredient by ID"""
    return await ingredient_service.get_ingredient(db, ingredient_id)


@router.post("/", response_model=Ingredient, status_code=status.HTTP_201_CREATED)
async def create_ingredient(ingredient: IngredientCreate, db: AsyncSession = Depends(get_async_session)):
    """Create a new ingredient; cost per standard unit is derived from the pack price and size"""
    return await ingredient_service.create_ingredient(
        db,
        name=ingredient.name,
        standard_measurement_unit=ingredient.standard_measurement_unit,
        purchase_pack_price=ingredient.purchase_pack_price,
        pack_quantity_in_standard_units=ingredient.pack_quantity_in_standard_units,
    )


@router.put("/{ingredient_id}", response_model=Ingredient)
async def update_ingredient(
    ingredient_id: int,
    ingredient: IngredientUpdate,
    db: AsyncSession = Depends(get_async_session)
):
    """Replace every field of an existing ingredient"""
    return await ingredient_service.update_ingredient(
        db,
        ingredient_id,
        name=ingredient.name,
        standard_measurement_unit=ingredient.standard_measurement_unit,
        purchase_pack_price=ingredient.purchase_pack_price,
        pack_quantity_in_standard_units=ingredient.pack_quantity_in_standard_units,
    )


@router.delete("/{ingredient_id}", response_model=Dict)
async def delete_ingredient(ingredient_id: int, db: AsyncSession = Depends(get_async_session)):
    """Delete an ingredient that is not used by any recipe"""
    await ingredient_service.delete_ingredient(db, ingredient_id)
    return {"msg": "Ingredient deleted successfully"}


@router.delete("/", response_model=Dict)
async def delete_ingredients(payload: IngredientBulkDelete, db: AsyncSession = Depends(get_async_session)):
    """Delete several ingredients by ID"""
    deleted = await ingredient_service.delete_ingredients(db, payload.ids)
    return {"msg": f"{deleted} Ingredient(s) deleted successfully.", "deleted": deleted}
