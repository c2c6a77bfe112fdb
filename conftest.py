# conftest.py
import os

# must be set before app.config is imported
os.environ.setdefault("APP_SECRET", "test-secret")
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from app.db import Base, make_engine, make_session_factory, get_db
from app.deps import get_gateway
from app.main import app
from app.models.core import MenuItem, InventoryItem, Employee
from app.services.gateway import PersistenceGateway
from app.services.mutations import MutationExecutor
from app.util.security import create_token


@pytest.fixture
def engine(tmp_path):
    # file-backed so separate connections (and threads) see one database
    eng = make_engine(f"sqlite:///{tmp_path / 'dine.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()

@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)

@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()

@pytest.fixture
def gateway(session_factory):
    return PersistenceGateway(session_factory)

@pytest.fixture
def executor(gateway):
    return MutationExecutor(gateway)

@pytest.fixture
def client(session_factory, gateway):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture
def base_url():
    return ""

@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_token('u1')}"}

@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {create_token('u2')}"}

@pytest.fixture
def menu(db):
    """Menu items 10, 11, 12 at restaurant 4."""
    db.add_all([
        MenuItem(id=10, restaurant_id=4, name="Paneer Tikka", price=6.5, category="Starters"),
        MenuItem(id=11, restaurant_id=4, name="Dal Makhani", price=5.0, category="Mains"),
        MenuItem(id=12, restaurant_id=4, name="Lassi", price=3.0, category="Drinks"),
    ])
    db.commit()
    return [10, 11, 12]

@pytest.fixture
def stock(db):
    """Six inventory rows, ids 1..6, quantity 10 each."""
    rows = [InventoryItem(name=f"item-{n}", quantity=10, unit="kg", low_stock_threshold=2) for n in range(1, 7)]
    db.add_all(rows)
    db.commit()
    return [r.id for r in rows]

@pytest.fixture
def chef(db):
    e = Employee(name="Asha", role="Chef", email="asha@example.com")
    db.add(e)
    db.commit()
    return e.id
