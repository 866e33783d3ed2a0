from __future__ import annotations

import os

# Importing database builds the module-level engine; keep it off MySQL in tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401
from database import Base, get_db, make_engine
from main import app
from services.customers import register_customer


ADDRESS = {
    "name": "Asha Rao",
    "phone": "9000000001",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'orders.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def customer(db):
    return register_customer(db, "Asha Rao", "9000000001", "12 MG Road, Bengaluru", "asha@example.com")


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def item(price, quantity=1, name="Widget", **extra):
    return {"product_id": "p-1", "name": name, "price": price, "quantity": quantity, **extra}
