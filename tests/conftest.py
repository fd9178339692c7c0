"""Pytest configuration and fixtures for API and service tests."""

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import create_app

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(scope="function")
def test_settings():
    return Settings(database_url=TEST_DATABASE_URL, api_prefix="/api", cors_origins=["*"])


@pytest.fixture(scope="function")
def client(test_settings):
    """Provide a client for a fresh application backed by its own in-memory database.

    Entering the TestClient context runs the lifespan, which creates the tables;
    leaving it disposes the engine, so nothing leaks between tests.
    """
    app = create_app(test_settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_ingredient(client):
    def _make(name="Flour", unit="g", price="15.50", quantity="5000"):
        res = client.post(
            "/api/ingredients/",
            json={
                "name": name,
                "standard_measurement_unit": unit,
                "purchase_pack_price": price,
                "pack_quantity_in_standard_units": quantity,
            },
        )
        assert res.status_code == 201, res.text
        return res.json()

    return _make


@pytest.fixture
def make_recipe(client):
    def _make(name="Bread", price=None):
        body = {"name": name}
        if price is not None:
            body["price"] = price
        res = client.post("/api/recipes/", json=body)
        assert res.status_code == 201, res.text
        return res.json()

    return _make


@pytest.fixture
def add_line(client):
    def _add(recipe_id, ingredient_id, quantity="1000", unit="g"):
        return client.post(
            f"/api/recipes/{recipe_id}/ingredients",
            json={"ingredient_id": ingredient_id, "quantity": quantity, "unit": unit},
        )

    return _add
