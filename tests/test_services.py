import asyncio
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from db.database import Database
from db.errors import FOREIGN_KEY_VIOLATION, UNIQUE_VIOLATION, classify_integrity_error
from db.ingredient import Ingredient
from schemas.recipe import RecipeYieldUpdate
from services import ingredient_service, recipe_service
from services.logging_utils import get_service_logger, log_operation
from services.exceptions import (
    Conflict,
    InvalidInput,
    InvalidQuantity,
    NotFound,
    ReferentialIntegrityViolation,
)

TEST_DATABASE_URL = "sqlite+aiosqlite://"


def run_with_session(scenario):
    """Run `scenario(db)` against a fresh in-memory store."""

    async def _run():
        database = Database(TEST_DATABASE_URL)
        await database.create_all()
        try:
            async with database.session_maker() as db:
                return await scenario(db)
        finally:
            await database.dispose()

    return asyncio.run(_run())


# --- Ingredient model ---

def test_ingredient_cost_is_recomputed_on_every_pricing_change():
    ingredient = Ingredient(name="Flour", standard_measurement_unit="g")
    ingredient.set_pack_pricing(Decimal("15.50"), Decimal("5000"))
    assert ingredient.cost_per_standard_unit == Decimal("0.0031")

    ingredient.purchase_pack_price = Decimal("10.00")
    assert ingredient.cost_per_standard_unit == Decimal("0.002")

    ingredient.pack_quantity_in_standard_units = Decimal("2000")
    assert ingredient.cost_per_standard_unit == Decimal("0.005")


def test_ingredient_cost_cannot_be_written_directly():
    ingredient = Ingredient(name="Flour", standard_measurement_unit="g")
    ingredient.set_pack_pricing(Decimal("15.50"), Decimal("5000"))
    with pytest.raises(ValueError):
        ingredient.cost_per_standard_unit = Decimal("1")
    assert ingredient.cost_per_standard_unit == Decimal("0.0031")


def test_invalid_pack_quantity_leaves_pricing_untouched():
    ingredient = Ingredient(name="Flour", standard_measurement_unit="g")
    ingredient.set_pack_pricing(Decimal("15.50"), Decimal("5000"))
    with pytest.raises(InvalidQuantity):
        ingredient.set_pack_pricing(Decimal("99.00"), Decimal("0"))
    assert ingredient.purchase_pack_price == Decimal("15.50")
    assert ingredient.cost_per_standard_unit == Decimal("0.0031")


# --- Store error classification ---

def _integrity_error(orig):
    return IntegrityError("INSERT ...", {}, orig)


def test_classify_postgres_sqlstate():
    assert classify_integrity_error(_integrity_error(SimpleNamespace(sqlstate="23505"))) == UNIQUE_VIOLATION
    assert classify_integrity_error(_integrity_error(SimpleNamespace(pgcode="23503"))) == FOREIGN_KEY_VIOLATION
    assert classify_integrity_error(_integrity_error(SimpleNamespace(sqlstate="23502"))) is None


def test_classify_sqlite_error_names():
    unique = SimpleNamespace(sqlite_errorname="SQLITE_CONSTRAINT_PRIMARYKEY")
    foreign = SimpleNamespace(sqlite_errorname="SQLITE_CONSTRAINT_FOREIGNKEY")
    assert classify_integrity_error(_integrity_error(unique)) == UNIQUE_VIOLATION
    assert classify_integrity_error(_integrity_error(foreign)) == FOREIGN_KEY_VIOLATION


def test_classify_sqlite_message_fallback():
    err = _integrity_error(Exception("UNIQUE constraint failed: recipes.name"))
    assert classify_integrity_error(err) == UNIQUE_VIOLATION
    err = _integrity_error(Exception("NOT NULL constraint failed: recipes.name"))
    assert classify_integrity_error(err) is None


# --- Services against a store ---

def test_create_ingredient_validates_before_touching_the_store():
    async def scenario(db):
        with pytest.raises(InvalidInput):
            await ingredient_service.create_ingredient(db, "", "g", Decimal("1"), Decimal("1"))
        with pytest.raises(InvalidInput):
            await ingredient_service.create_ingredient(db, "Flour", "g", None, Decimal("1"))
        with pytest.raises(InvalidQuantity):
            await ingredient_service.create_ingredient(db, "Flour", "g", Decimal("1"), Decimal("0"))
        return await ingredient_service.list_ingredients(db)

    assert run_with_session(scenario) == []


def test_ingredient_round_trip_through_service():
    async def scenario(db):
        created = await ingredient_service.create_ingredient(db, "Flour", "g", Decimal("15.50"), Decimal("5000"))
        fetched = await ingredient_service.get_ingredient(db, created.id)
        return fetched.purchase_pack_price, fetched.pack_quantity_in_standard_units, fetched.cost_per_standard_unit

    price, quantity, cost = run_with_session(scenario)
    assert cost == Decimal("0.0031")
    assert cost == price / quantity


def test_recipe_service_errors():
    async def scenario(db):
        flour = await ingredient_service.create_ingredient(db, "Flour", "g", Decimal("15.50"), Decimal("5000"))
        bread = await recipe_service.create_recipe(db, "Bread")
        # A failed commit rolls back and expires loaded rows; keep plain ids
        flour_id, bread_id = flour.id, bread.id

        with pytest.raises(Conflict) as dup_name:
            await recipe_service.create_recipe(db, "Bread", Decimal("3"))
        assert dup_name.value.status_code == 400

        await recipe_service.add_ingredient_to_recipe(db, bread_id, flour_id, Decimal("1000"), "g")
        with pytest.raises(Conflict) as dup_line:
            await recipe_service.add_ingredient_to_recipe(db, bread_id, flour_id, Decimal("5"), "g")
        assert dup_line.value.status_code == 409

        with pytest.raises(ReferentialIntegrityViolation):
            await recipe_service.add_ingredient_to_recipe(db, bread_id, 999, Decimal("5"), "g")
        with pytest.raises(NotFound):
            await recipe_service.update_recipe_ingredient_quantity(db, bread_id, 999, Decimal("5"))
        with pytest.raises(InvalidInput):
            await recipe_service.update_recipe_yield(db, bread_id, RecipeYieldUpdate())
        with pytest.raises(InvalidInput):
            await recipe_service.delete_recipes(db, [])
        with pytest.raises(NotFound):
            await recipe_service.delete_recipes(db, [999999])
        with pytest.raises(Conflict):
            await ingredient_service.delete_ingredient(db, flour_id)

        detail = await recipe_service.get_recipe_detail(db, bread_id)
        return detail.calculated_cost

    assert run_with_session(scenario) == Decimal("3.10")


def test_yield_update_with_explicit_null_clears_the_field():
    async def scenario(db):
        bread = await recipe_service.create_recipe(db, "Bread")
        await recipe_service.update_recipe_yield(
            db, bread.id, RecipeYieldUpdate(final_yield_weight_grams=Decimal("800"), serving_portions=8)
        )
        await recipe_service.update_recipe_yield(db, bread.id, RecipeYieldUpdate(serving_portions=None))
        bread_id = bread.id
        db.expire_all()
        return await recipe_service.get_recipe_detail(db, bread_id)

    detail = run_with_session(scenario)
    assert detail.serving_portions is None
    assert detail.final_yield_weight_grams == Decimal("800")


def test_store_errors_are_not_leaked(client, monkeypatch):
    async def broken(db):
        raise SQLAlchemyError("connection refused by 10.0.0.5")

    monkeypatch.setattr(ingredient_service, "list_ingredients", broken)
    res = client.get("/api/ingredients/")
    assert res.status_code == 500
    assert res.json() == {"msg": "Server error"}


def test_services_refuse_amounts_the_store_would_round():
    async def scenario(db):
        with pytest.raises(InvalidInput):
            await ingredient_service.create_ingredient(db, "Saffron", "g", Decimal("2.00"), Decimal("0.0005"))
        with pytest.raises(InvalidInput):
            await recipe_service.create_recipe(db, "Bread", Decimal("100000000"))
        bread = await recipe_service.create_recipe(db, "Bread")
        with pytest.raises(InvalidInput):
            await recipe_service.update_recipe_yield(
                db, bread.id, RecipeYieldUpdate.model_construct(final_yield_weight_grams=Decimal("0.001"))
            )
        return (await ingredient_service.list_ingredients(db))

    assert run_with_session(scenario) == []


def test_out_of_range_ids_never_reach_the_store():
    huge = 2**63

    async def scenario(db):
        with pytest.raises(NotFound):
            await ingredient_service.get_ingredient(db, huge)
        with pytest.raises(NotFound):
            await recipe_service.get_recipe_detail(db, huge)
        with pytest.raises(NotFound):
            await recipe_service.delete_recipes(db, [huge, -1])
        with pytest.raises(ReferentialIntegrityViolation):
            await recipe_service.add_ingredient_to_recipe(db, huge, 1, Decimal("1"), "g")

    run_with_session(scenario)


def test_log_operation_renders_costs_fixed_point(caplog):
    logger = get_service_logger("services.ingredient_service")
    assert logger.name == "foodcost.services.ingredient_service"

    with caplog.at_level("INFO", logger="foodcost.services"):
        log_operation(logger, "create_ingredient", "success", cost_per_standard_unit=Decimal("0E-8"))
        log_operation(logger, "delete_ingredient", "in_use", ingredient_id=3)

    created, refused = caplog.records
    assert created.getMessage() == "create_ingredient: success (cost_per_standard_unit=0.00000000)"
    assert created.levelname == "INFO"
    assert refused.levelname == "WARNING"
    assert refused.outcome == "in_use"
