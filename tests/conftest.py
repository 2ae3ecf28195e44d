"""Shared pytest fixtures: app with in-memory SQLite, session, client, catalog."""

import pytest

from app import create_app
from config import TestConfig
from models import db as _db
from models.product import Product


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def session(app):
    return _db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def add_products(session):
    """Factory: add_products(("P001", "AZUCAR 1 KG"), ...) -> list[Product]."""

    def _add(*pairs, active=True):
        created = []
        for code, description in pairs:
            p = Product(code=code, description=description, is_active=active)
            session.add(p)
            created.append(p)
        session.commit()
        return created

    return _add
