"""Shared test fixtures for all tests."""
import os

# must be set before kg_amor is imported
os.environ["DB_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LEDGER_RETRY_BACKOFF_MS"] = "1"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "kgdoamor2025"

import base64
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kg_amor.db import Base
from kg_amor.main import app, get_db
from kg_amor.models import Category, Cell, Network, Product

AUTH = ("admin", "kgdoamor2025")


@pytest.fixture(scope="function")
def test_db():
    """Create a fresh in-memory SQLite database for each test."""
    # StaticPool: the API runs sync endpoints in a worker thread
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(test_db):
    """Create a test client with dependency override."""
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    return AUTH


@pytest.fixture
def sample_catalog(test_db):
    """One category with three products."""
    category = Category(name="GRÃOS E CEREAIS", color="#8B4513")
    test_db.add(category)
    test_db.flush()
    products = [
        Product(name="Arroz", unit="kg", category_id=category.id),
        Product(name="Feijão", unit="kg", category_id=category.id),
        Product(name="Óleo", unit="litros", category_id=category.id),
    ]
    test_db.add_all(products)
    test_db.commit()
    return products


@pytest.fixture
def sample_networks(test_db):
    networks = [
        Network(color="Amarela", hex="#FFD700"),
        Network(color="Azul", hex="#1E90FF"),
    ]
    test_db.add_all(networks)
    test_db.commit()
    return networks


@pytest.fixture
def sample_cells(test_db, sample_networks):
    """Three active cells with no deliveries yet."""
    amarela, azul = sample_networks
    cells = [
        Cell(name="Célula Esperança", leader="Ana", supervisors="Paulo e Marta", network_id=amarela.id),
        Cell(name="Célula Vitória", leader="Bruno", supervisors="Paulo e Marta", network_id=amarela.id),
        Cell(name="Célula Graça", leader="Carla", supervisors=None, network_id=azul.id),
    ]
    test_db.add_all(cells)
    test_db.commit()
    return cells


@pytest.fixture
def stocked_catalog(test_db, sample_catalog):
    """Products 0 and 1 with 10 units received, product 2 never received."""
    from kg_amor.stock import post_receipt

    post_receipt(test_db, "receipt:opening", [
        (sample_catalog[0].id, Decimal("10")),
        (sample_catalog[1].id, Decimal("10")),
    ])
    return sample_catalog


@pytest.fixture
def auth_headers():
    """Basic authentication headers for API tests."""
    credentials = base64.b64encode(b"admin:kgdoamor2025").decode("utf-8")
    return {"Authorization": f"Basic {credentials}"}


@pytest.fixture
def invalid_auth_headers():
    """Invalid authentication headers for testing auth failures."""
    credentials = base64.b64encode(b"admin:wrongpassword").decode("utf-8")
    return {"Authorization": f"Basic {credentials}"}
