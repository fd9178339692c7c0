"""Ingredient CRUD.

Every function takes the request's AsyncSession as its first argument and
commits (or rolls back) its own unit of work.
"""

from decimal import Decimal
from typing import List, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import is_storable_id
from db.errors import FOREIGN_KEY_VIOLATION, UNIQUE_VIOLATION, classify_integrity_error
from db.ingredient import Ingredient
from db.recipe_ingredient import RecipeIngredient
from .exceptions import Conflict, InvalidInput, NotFound, StoreUnavailable
from .logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)


def _require_fields(name, unit, purchase_pack_price, pack_quantity):
    if not name or not unit or purchase_pack_price is None or pack_quantity is None:
        raise InvalidInput("Please provide all required fields")


async def _commit(db: AsyncSession, operation: str):
    """Commit, translating constraint violations into service errors."""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        kind = classify_integrity_error(e)
        if kind == UNIQUE_VIOLATION:
            raise Conflict("An ingredient with this name already exists.")
        if kind == FOREIGN_KEY_VIOLATION:
            raise Conflict("This ingredient is used by one or more recipes.")
        logger.exception("%s failed with an unclassified integrity error", operation)
        raise StoreUnavailable()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("%s failed", operation)
        raise StoreUnavailable()


async def list_ingredients(db: AsyncSession) -> List[Ingredient]:
    result = await db.execute(select(Ingredient).order_by(Ingredient.name.asc()))
    return list(result.scalars().all())


async def get_ingredient(db: AsyncSession, ingredient_id: int) -> Ingredient:
    if not is_storable_id(ingredient_id):
        raise NotFound("Ingredient not found")
    result = await db.execute(select(Ingredient).where(Ingredient.id == ingredient_id))
    ingredient = result.scalar_one_or_none()
    if not ingredient:
        raise NotFound("Ingredient not found")
    return ingredient


async def create_ingredient(
    db: AsyncSession,
    name: str,
    standard_measurement_unit: str,
    purchase_pack_price: Decimal,
    pack_quantity_in_standard_units: Decimal,
) -> Ingredient:
    _require_fields(name, standard_measurement_unit, purchase_pack_price, pack_quantity_in_standard_units)

    ingredient = Ingredient(name=name, standard_measurement_unit=standard_measurement_unit)
    ingredient.set_pack_pricing(purchase_pack_price, pack_quantity_in_standard_units)
    db.add(ingredient)
    await _commit(db, "create_ingredient")
    await db.refresh(ingredient)

    log_operation(
        logger,
        operation="create_ingredient",
        outcome="success",
        ingredient_id=ingredient.id,
        cost_per_standard_unit=ingredient.cost_per_standard_unit,
    )
    return ingredient


async def update_ingredient(
    db: AsyncSession,
    ingredient_id: int,
    name: str,
    standard_measurement_unit: str,
    purchase_pack_price: Decimal,
    pack_quantity_in_standard_units: Decimal,
) -> Ingredient:
    _require_fields(name, standard_measurement_unit, purchase_pack_price, pack_quantity_in_standard_units)

    ingredient = await get_ingredient(db, ingredient_id)
    ingredient.name = name
    ingredient.standard_measurement_unit = standard_measurement_unit
    ingredient.set_pack_pricing(purchase_pack_price, pack_quantity_in_standard_units)
    await _commit(db, "update_ingredient")
    await db.refresh(ingredient)

    log_operation(
        logger,
        operation="update_ingredient",
        outcome="success",
        ingredient_id=ingredient.id,
        cost_per_standard_unit=ingredient.cost_per_standard_unit,
    )
    return ingredient


async def _count_recipe_lines(db: AsyncSession, ingredient_ids: Sequence[int]) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(RecipeIngredient)
        .where(RecipeIngredient.ingredient_id.in_(ingredient_ids))
    )
    return result.scalar_one()


async def delete_ingredient(db: AsyncSession, ingredient_id: int) -> None:
    """Delete an ingredient that no recipe uses (RESTRICT)."""
    ingredient = await get_ingredient(db, ingredient_id)

    if await _count_recipe_lines(db, [ingredient_id]):
        log_operation(logger, operation="delete_ingredient", outcome="in_use", ingredient_id=ingredient_id)
        raise Conflict("This ingredient is used by one or more recipes.")

    await db.delete(ingredient)
    await _commit(db, "delete_ingredient")
    log_operation(logger, operation="delete_ingredient", outcome="success", ingredient_id=ingredient_id)


async def delete_ingredients(db: AsyncSession, ids: Sequence[int]) -> int:
    """Delete several ingredients at once; returns how many rows were removed."""
    if not ids:
        raise InvalidInput("Please provide an array of IDs to delete.")
    if not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        raise InvalidInput("All IDs must be valid integers.")
    ids = [i for i in ids if is_storable_id(i)]
    if not ids:
        raise NotFound("None of the provided ingredient IDs were found.")

    if await _count_recipe_lines(db, ids):
        raise Conflict("One or more of these ingredients are used by recipes.")

    result = await db.execute(delete(Ingredient).where(Ingredient.id.in_(ids)))
    deleted = result.rowcount
    if deleted == 0:
        await db.rollback()
        raise NotFound("None of the provided ingredient IDs were found.")

    await _commit(db, "delete_ingredients")
    log_operation(logger, operation="delete_ingredients", outcome="success", deleted=deleted)
    return deleted
