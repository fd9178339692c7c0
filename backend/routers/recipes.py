from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from schemas.recipe import (
    BulkDeleted,
    Recipe,
    RecipeBulkDelete,
    RecipeCreate,
    RecipeDeleted,
    RecipeDetail,
    RecipePage,
    RecipeUpdate,
    RecipeYieldUpdate,
)
from schemas.recipe_ingredient import (
    RecipeIngredient,
    RecipeIngredientCreate,
    RecipeIngredientDeleted,
    RecipeIngredientUpdate,
)
from db.database import MAX_ROW_ID, get_async_session
from services import recipe_service
from services.exceptions import InvalidInput
from typing import Dict, Optional

router = APIRouter()


@router.get("/", response_model=RecipePage)
async def get_recipes(
    request: Request,
    page: int = Query(1, ge=1, le=MAX_ROW_ID),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_async_session)
):
    """Get a page of recipes with their calculated cost, ordered by name"""
    settings = request.app.state.settings
    if limit is None:
        limit = settings.default_page_size
    if limit > settings.max_page_size:
        raise InvalidInput(f"limit cannot exceed {settings.max_page_size}")
    return await recipe_service.list_recipes(db, page=page, limit=limit)


@router.get("/{recipe_id}", response_model=RecipeDetail)
async def get_recipe(recipe_id: int, db: AsyncSession = Depends(get_async_session)):
    """Get a recipe with its ingredient lines and derived costs"""
    return await recipe_service.get_recipe_detail(db, recipe_id)


@router.post("/", response_model=Recipe, status_code=status.HTTP_201_CREATED)
async def create_recipe(recipe: RecipeCreate, db: AsyncSession = Depends(get_async_session)):
    """Create a new recipe; price defaults to 0.00"""
    return await recipe_service.create_recipe(db, recipe.name, recipe.price)


@router.put("/{recipe_id}", response_model=Recipe)
async def update_recipe(recipe_id: int, recipe: RecipeUpdate, db: AsyncSession = Depends(get_async_session)):
    """Replace a recipe's name and price"""
    return await recipe_service.update_recipe(db, recipe_id, recipe.name, recipe.price)


@router.patch("/{recipe_id}/yield", response_model=Dict)
async def update_recipe_yield(
    recipe_id: int,
    changes: RecipeYieldUpdate,
    db: AsyncSession = Depends(get_async_session)
):
    """Update the final yield weight and/or the number of servings"""
    await recipe_service.update_recipe_yield(db, recipe_id, changes)
    return {"msg": "Yield information updated successfully."}


@router.delete("/{recipe_id}", response_model=RecipeDeleted)
async def delete_recipe(recipe_id: int, db: AsyncSession = Depends(get_async_session)):
    """Delete a recipe and its ingredient lines"""
    deleted = await recipe_service.delete_recipe(db, recipe_id)
    return {"msg": "Recipe deleted successfully", "deletedRecipe": deleted}


@router.delete("/", response_model=BulkDeleted)
async def delete_recipes(payload: RecipeBulkDelete, db: AsyncSession = Depends(get_async_session)):
    """Delete several recipes by ID; succeeds if at least one existed"""
    deleted = await recipe_service.delete_recipes(db, payload.ids)
    return {"msg": f"{deleted} Recipe(s) deleted successfully.", "deleted": deleted}


@router.post(
    "/{recipe_id}/ingredients",
    response_model=RecipeIngredient,
    status_code=status.HTTP_201_CREATED,
)
async def add_recipe_ingredient(
    recipe_id: int,
    line: RecipeIngredientCreate,
    db: AsyncSession = Depends(get_async_session)
):
    """Add an ingredient to an existing recipe"""
    return await recipe_service.add_ingredient_to_recipe(
        db, recipe_id, line.ingredient_id, line.quantity, line.unit
    )


@router.put("/{recipe_id}/ingredients/{ingredient_id}", response_model=RecipeIngredient)
async def update_recipe_ingredient(
    recipe_id: int,
    ingredient_id: int,
    line: RecipeIngredientUpdate,
    db: AsyncSession = Depends(get_async_session)
):
    """Update the quantity of an ingredient in a recipe"""
    return await recipe_service.update_recipe_ingredient_quantity(db, recipe_id, ingredient_id, line.quantity)


@router.delete("/{recipe_id}/ingredients/{ingredient_id}", response_model=RecipeIngredientDeleted)
async def remove_recipe_ingredient(
    recipe_id: int,
    ingredient_id: int,
    db: AsyncSession = Depends(get_async_session)
):
    """Remove an ingredient from a recipe"""
    deleted = await recipe_service.remove_ingredient_from_recipe(db, recipe_id, ingredient_id)
    return {"msg": "Ingredient removed successfully", "deletedIngredient": deleted}
