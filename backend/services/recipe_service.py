"""Recipe CRUD, recipe lines and cost aggregation.

Every function takes the request's AsyncSession as its first argument.
Recipe detail is read with two queries (recipe row, then its lines) outside
an explicit transaction; a write landing between them is tolerated.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import MAX_ROW_ID, is_storable_id
from db.errors import FOREIGN_KEY_VIOLATION, UNIQUE_VIOLATION, classify_integrity_error
from db.ingredient import Ingredient
from db.recipe import Recipe
from db.recipe_ingredient import RecipeIngredient
from schemas.recipe import RecipeDetail, RecipeLine, RecipePage, RecipeSummary, RecipeYieldUpdate
from .costing import (
    MONEY_DIGITS,
    MONEY_PLACES,
    QUANTITY_DIGITS,
    QUANTITY_PLACES,
    compute_calculated_cost,
    compute_cost_per_kg,
    compute_cost_per_portion,
    to_column_scale,
)
from .exceptions import (
    Conflict,
    InvalidInput,
    InvalidQuantity,
    NotFound,
    ReferentialIntegrityViolation,
    ServiceError,
    StoreUnavailable,
)
from .logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)

DUPLICATE_RECIPE_MSG = "A recipe with this name already exists."
DUPLICATE_LINE_MSG = "This ingredient is already in this recipe. Please update the quantity instead."
MISSING_RELATION_MSG = "The specified recipe or ingredient does not exist."


async def _commit(
    db: AsyncSession,
    operation: str,
    on_unique: Optional[Conflict] = None,
    on_foreign_key: Optional[ServiceError] = None,
):
    """Commit, translating constraint violations into the given service errors."""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        kind = classify_integrity_error(e)
        if kind == UNIQUE_VIOLATION and on_unique is not None:
            raise on_unique
        if kind == FOREIGN_KEY_VIOLATION and on_foreign_key is not None:
            raise on_foreign_key
        logger.exception("%s failed with an unclassified integrity error", operation)
        raise StoreUnavailable()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("%s failed", operation)
        raise StoreUnavailable()


def _validate_ids(ids: Sequence[int]):
    if not ids:
        raise InvalidInput("Please provide an array of IDs to delete.")
    if not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        raise InvalidInput("All IDs must be valid integers.")


async def _calculated_costs(db: AsyncSession, recipe_ids: List[int]) -> Dict[int, Decimal]:
    """calculated_cost per recipe, summed with the same rule as the detail view."""
    if not recipe_ids:
        return {}
    result = await db.execute(
        select(RecipeIngredient.recipe_id, Ingredient.cost_per_standard_unit, RecipeIngredient.quantity)
        .join(Ingredient, Ingredient.id == RecipeIngredient.ingredient_id)
        .where(RecipeIngredient.recipe_id.in_(recipe_ids))
    )
    lines = defaultdict(list)
    for row in result.all():
        lines[row.recipe_id].append((row.cost_per_standard_unit, row.quantity))
    return {recipe_id: compute_calculated_cost(lines[recipe_id]) for recipe_id in recipe_ids}


async def _get_recipe_row(db: AsyncSession, recipe_id: int) -> Recipe:
    if not is_storable_id(recipe_id):
        raise NotFound(f"Recipe with ID {recipe_id} not found.")
    result = await db.execute(select(Recipe).where(Recipe.id == recipe_id))
    recipe = result.scalar_one_or_none()
    if not recipe:
        raise NotFound(f"Recipe with ID {recipe_id} not found.")
    return recipe


async def _get_line(db: AsyncSession, recipe_id: int, ingredient_id: int) -> RecipeIngredient:
    if not (is_storable_id(recipe_id) and is_storable_id(ingredient_id)):
        raise NotFound("Ingredient not found in this recipe")
    result = await db.execute(
        select(RecipeIngredient).where(
            RecipeIngredient.recipe_id == recipe_id,
            RecipeIngredient.ingredient_id == ingredient_id,
        )
    )
    line = result.scalar_one_or_none()
    if not line:
        raise NotFound("Ingredient not found in this recipe")
    return line


# --- Recipes ---

async def list_recipes(db: AsyncSession, page: int = 1, limit: int = 10) -> RecipePage:
    if page < 1 or limit < 1:
        raise InvalidInput("page and limit must be positive integers")
    offset = (page - 1) * limit

    total = (await db.execute(select(func.count()).select_from(Recipe))).scalar_one()

    result = await db.execute(
        select(Recipe.id, Recipe.name, Recipe.price)
        .order_by(Recipe.name.asc())
        .limit(limit)
        .offset(offset)
    )
    rows = result.all()
    costs = await _calculated_costs(db, [row.id for row in rows])
    items = [
        RecipeSummary(id=row.id, name=row.name, price=row.price, calculated_cost=costs[row.id])
        for row in rows
    ]
    return RecipePage(items=items, total=total)


async def get_recipe_detail(db: AsyncSession, recipe_id: int) -> RecipeDetail:
    recipe = await _get_recipe_row(db, recipe_id)

    result = await db.execute(
        select(
            RecipeIngredient.ingredient_id,
            Ingredient.name,
            RecipeIngredient.quantity,
            RecipeIngredient.unit,
            Ingredient.cost_per_standard_unit,
        )
        .join(Ingredient, Ingredient.id == RecipeIngredient.ingredient_id)
        .where(RecipeIngredient.recipe_id == recipe_id)
        .order_by(Ingredient.name.asc())
    )
    rows = result.all()

    calculated_cost = compute_calculated_cost((row.cost_per_standard_unit, row.quantity) for row in rows)
    return RecipeDetail(
        id=recipe.id,
        name=recipe.name,
        selling_price=recipe.price,
        final_yield_weight_grams=recipe.final_yield_weight_grams,
        serving_portions=recipe.serving_portions,
        calculated_cost=calculated_cost,
        cost_per_portion=compute_cost_per_portion(calculated_cost, recipe.serving_portions),
        cost_per_kg=compute_cost_per_kg(calculated_cost, recipe.final_yield_weight_grams),
        ingredients=[
            RecipeLine(ingredient_id=row.ingredient_id, name=row.name, quantity=row.quantity, unit=row.unit)
            for row in rows
        ],
    )


def _selling_price(price: Optional[Decimal]) -> Decimal:
    if price is None:
        return Decimal("0.00")
    if price < 0:
        raise InvalidInput("price cannot be negative")
    return to_column_scale("price", price, MONEY_PLACES, MONEY_DIGITS)


async def create_recipe(db: AsyncSession, name: str, price: Optional[Decimal] = None) -> Recipe:
    if not name or not name.strip():
        raise InvalidInput("A recipe name is required")

    recipe = Recipe(name=name.strip(), price=_selling_price(price))
    db.add(recipe)
    await _commit(db, "create_recipe", on_unique=Conflict(DUPLICATE_RECIPE_MSG, status_code=400))
    await db.refresh(recipe)

    log_operation(logger, operation="create_recipe", outcome="success", recipe_id=recipe.id)
    return recipe


async def update_recipe(db: AsyncSession, recipe_id: int, name: str, price: Optional[Decimal] = None) -> Recipe:
    if not name or not name.strip():
        raise InvalidInput("Please include a recipe name and price")

    recipe = await _get_recipe_row(db, recipe_id)
    recipe.name = name.strip()
    recipe.price = _selling_price(price)
    await _commit(db, "update_recipe", on_unique=Conflict(DUPLICATE_RECIPE_MSG, status_code=400))
    await db.refresh(recipe)

    log_operation(logger, operation="update_recipe", outcome="success", recipe_id=recipe.id)
    return recipe


async def update_recipe_yield(db: AsyncSession, recipe_id: int, changes: RecipeYieldUpdate) -> None:
    """Write only the yield fields present in `changes`."""
    values = changes.changes()
    if not values:
        raise InvalidInput("No valid fields to update.")
    for field, value in values.items():
        if value is not None and value < 0:
            raise InvalidInput(f"{field} cannot be negative")
    if values.get("final_yield_weight_grams") is not None:
        values["final_yield_weight_grams"] = to_column_scale(
            "final_yield_weight_grams", values["final_yield_weight_grams"], MONEY_PLACES, MONEY_DIGITS
        )
    if (values.get("serving_portions") or 0) > MAX_ROW_ID:
        raise InvalidInput(f"serving_portions cannot exceed {MAX_ROW_ID}")
    if not is_storable_id(recipe_id):
        raise NotFound(f"Recipe with ID {recipe_id} not found.")

    result = await db.execute(update(Recipe).where(Recipe.id == recipe_id).values(**values))
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound(f"Recipe with ID {recipe_id} not found.")
    await _commit(db, "update_recipe_yield")

    log_operation(logger, operation="update_recipe_yield", outcome="success", recipe_id=recipe_id, **values)


async def delete_recipe(db: AsyncSession, recipe_id: int) -> Recipe:
    recipe = await _get_recipe_row(db, recipe_id)
    await db.delete(recipe)
    await _commit(db, "delete_recipe")

    log_operation(logger, operation="delete_recipe", outcome="success", recipe_id=recipe_id)
    return recipe


async def delete_recipes(db: AsyncSession, ids: Sequence[int]) -> int:
    """Delete every recipe in `ids` that exists; fails only if none did."""
    _validate_ids(ids)
    ids = [i for i in ids if is_storable_id(i)]
    if not ids:
        raise NotFound("None of the provided recipe IDs were found.")

    result = await db.execute(delete(Recipe).where(Recipe.id.in_(ids)))
    deleted = result.rowcount
    if deleted == 0:
        await db.rollback()
        raise NotFound("None of the provided recipe IDs were found.")
    await _commit(db, "delete_recipes")

    log_operation(logger, operation="delete_recipes", outcome="success", deleted=deleted)
    return deleted


# --- Recipe lines ---

def _line_quantity(quantity) -> Decimal:
    if quantity is None:
        raise InvalidInput("Please provide a quantity")
    if quantity <= 0:
        raise InvalidQuantity("quantity", quantity)
    return to_column_scale("quantity", quantity, QUANTITY_PLACES, QUANTITY_DIGITS)


async def add_ingredient_to_recipe(
    db: AsyncSession,
    recipe_id: int,
    ingredient_id: int,
    quantity: Decimal,
    unit: str,
) -> RecipeIngredient:
    if ingredient_id is None or quantity is None or not unit:
        raise InvalidInput("Please provide an ingredient_id, quantity, and unit")
    quantity = _line_quantity(quantity)
    if not (is_storable_id(recipe_id) and is_storable_id(ingredient_id)):
        raise ReferentialIntegrityViolation(MISSING_RELATION_MSG)

    line = RecipeIngredient(
        recipe_id=recipe_id,
        ingredient_id=ingredient_id,
        quantity=quantity,
        unit=unit.strip(),
    )
    db.add(line)
    await _commit(
        db,
        "add_ingredient_to_recipe",
        on_unique=Conflict(DUPLICATE_LINE_MSG),
        on_foreign_key=ReferentialIntegrityViolation(MISSING_RELATION_MSG),
    )
    await db.refresh(line)

    log_operation(
        logger,
        operation="add_ingredient_to_recipe",
        outcome="success",
        recipe_id=recipe_id,
        ingredient_id=ingredient_id,
    )
    return line


async def update_recipe_ingredient_quantity(
    db: AsyncSession,
    recipe_id: int,
    ingredient_id: int,
    quantity: Decimal,
) -> RecipeIngredient:
    quantity = _line_quantity(quantity)

    line = await _get_line(db, recipe_id, ingredient_id)
    line.quantity = quantity
    await _commit(db, "update_recipe_ingredient_quantity")
    await db.refresh(line)

    log_operation(
        logger,
        operation="update_recipe_ingredient_quantity",
        outcome="success",
        recipe_id=recipe_id,
        ingredient_id=ingredient_id,
    )
    return line


async def remove_ingredient_from_recipe(db: AsyncSession, recipe_id: int, ingredient_id: int) -> RecipeIngredient:
    line = await _get_line(db, recipe_id, ingredient_id)
    await db.delete(line)
    await _commit(db, "remove_ingredient_from_recipe")

    log_operation(
        logger,
        operation="remove_ingredient_from_recipe",
        outcome="success",
        recipe_id=recipe_id,
        ingredient_id=ingredient_id,
    )
    return line
