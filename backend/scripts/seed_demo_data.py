import asyncio
import sys
from pathlib import Path
from decimal import Decimal

"""
Seed demo data (ingredients and recipes with their lines) into the configured DB.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`

Re-running it updates prices and replaces recipe lines instead of duplicating rows.
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select, delete  # noqa: E402

from core.config import settings  # noqa: E402
from db.database import Database  # noqa: E402
from db.ingredient import Ingredient  # noqa: E402
from db.recipe import Recipe  # noqa: E402
from db.recipe_ingredient import RecipeIngredient  # noqa: E402


async def upsert_ingredient(
    session,
    name: str,
    unit: str,
    pack_price: Decimal,
    pack_quantity: Decimal,
) -> Ingredient:
    result = await session.execute(
        select(Ingredient).where(func.lower(Ingredient.name) == name.strip().lower())
    )
    ingredient = result.scalar_one_or_none()
    if not ingredient:
        ingredient = Ingredient(name=name.strip(), standard_measurement_unit=unit)
        session.add(ingredient)
    else:
        ingredient.standard_measurement_unit = unit

    # Keep prices up-to-date if you re-run seed with new values
    ingredient.set_pack_pricing(pack_price, pack_quantity)
    await session.flush()
    return ingredient


async def upsert_recipe(
    session,
    name: str,
    price: Decimal,
    lines: list[tuple[Ingredient, Decimal]],
    final_yield_weight_grams: Decimal | None = None,
    serving_portions: int | None = None,
) -> Recipe:
    result = await session.execute(
        select(Recipe).where(func.lower(Recipe.name) == name.strip().lower())
    )
    recipe = result.scalar_one_or_none()
    if not recipe:
        recipe = Recipe(name=name.strip(), price=price)
        session.add(recipe)
        await session.flush()
    else:
        recipe.price = price

        # Replace ingredient lines
        await session.execute(
            delete(RecipeIngredient).where(RecipeIngredient.recipe_id == recipe.id)
        )
        await session.flush()

    recipe.final_yield_weight_grams = final_yield_weight_grams
    recipe.serving_portions = serving_portions

    for ingredient, quantity in lines:
        session.add(
            RecipeIngredient(
                recipe_id=recipe.id,
                ingredient_id=ingredient.id,
                quantity=quantity,
                unit=ingredient.standard_measurement_unit,
            )
        )

    await session.flush()
    return recipe


async def seed(database_url: str | None = None):
    database = Database(database_url or settings.database_url)
    await database.create_all()
    try:
        async with database.session_maker() as session:
            async with session.begin():
                # Prices are example values
                flour = await upsert_ingredient(session, "Flour", "g", Decimal("15.50"), Decimal("5000"))
                sugar = await upsert_ingredient(session, "Sugar", "g", Decimal("2.40"), Decimal("1000"))
                butter = await upsert_ingredient(session, "Butter", "g", Decimal("3.20"), Decimal("250"))
                eggs = await upsert_ingredient(session, "Eggs", "pc", Decimal("3.60"), Decimal("12"))
                milk = await upsert_ingredient(session, "Milk", "ml", Decimal("1.15"), Decimal("1000"))

                await upsert_recipe(
                    session,
                    "Pancakes",
                    Decimal("8.50"),
                    [
                        (flour, Decimal("250")),
                        (milk, Decimal("500")),
                        (eggs, Decimal("2")),
                        (butter, Decimal("30")),
                    ],
                    final_yield_weight_grams=Decimal("900"),
                    serving_portions=4,
                )

                await upsert_recipe(
                    session,
                    "Shortbread",
                    Decimal("12.00"),
                    [
                        (flour, Decimal("300")),
                        (butter, Decimal("200")),
                        (sugar, Decimal("100")),
                    ],
                    serving_portions=16,
                )

                await upsert_recipe(
                    session,
                    "Bread",
                    Decimal("4.00"),
                    [(flour, Decimal("1000"))],
                    final_yield_weight_grams=Decimal("1500"),
                )
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
