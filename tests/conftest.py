"""Shared pytest fixtures for the shop API tests.

Every test gets a fresh in-memory SQLite database, a Session bound to it,
and factories for the rows most tests need.
"""
from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_JSON", "false")

from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

import models
from database import Base, SessionLocal, engine, get_db, init_db
from main import app
from security import hash_password


@pytest.fixture
def session():
    init_db(engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(session):
    app.dependency_overrides[get_db] = lambda: session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def _make(email: str | None = None, role: str = "customer", password: str = "password123"):
        counter["n"] += 1
        user = models.User(
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(password),
            first_name="Test",
            last_name=f"User{counter['n']}",
            role=role,
        )
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def make_product(session):
    def _make(**overrides: Any):
        values = {
            "name": "Test Shirt",
            "description": "A test shirt",
            "type": "shirt",
            "gender": "unisex",
            "base_price": Decimal("29.99"),
            "is_active": True,
        }
        values.update(overrides)
        product = models.Product(**values)
        session.add(product)
        session.commit()
        return product

    return _make


@pytest.fixture
def make_variation(session):
    def _make(product, **overrides: Any):
        values = {
            "product_id": product.id,
            "variation_type": "size",
            "variation_value": "Large",
            "price_adjustment": Decimal("5.00"),
            "stock_quantity": 10,
            "is_available": True,
        }
        values.update(overrides)
        variation = models.ProductVariation(**values)
        session.add(variation)
        session.commit()
        return variation

    return _make
