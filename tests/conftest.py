"""
Shared test fixtures — SQLite database, test client, fake Shopify clients.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set configuration before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["PUBLIC_STORE_DOMAIN"] = "test-shop.myshopify.com"
os.environ["SHOPIFY_ADMIN_ACCESS_TOKEN"] = "test-admin-token"
os.environ["SHOPIFY_STOREFRONT_ACCESS_TOKEN"] = "test-storefront-token"
os.environ["COMPENSATE_ORPHANED_VARIANTS"] = "false"
os.environ["CART_ATTACH_MAX_ATTEMPTS"] = "1"

from cutstock.database import Base, get_db
from cutstock.main import app
from cutstock.shopify import get_admin_client, get_storefront_client

from fakes import FakeGraphQLClient


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin():
    """Fake Admin API client — variant creation and deletion."""
    return FakeGraphQLClient("admin")


@pytest.fixture
def storefront():
    """Fake Storefront API client — cart operations."""
    return FakeGraphQLClient("storefront")


@pytest.fixture
def client(admin, storefront):
    """FastAPI test client wired to the fake Shopify clients."""
    app.dependency_overrides[get_admin_client] = lambda: admin
    app.dependency_overrides[get_storefront_client] = lambda: storefront
    yield TestClient(app)
    app.dependency_overrides.pop(get_admin_client, None)
    app.dependency_overrides.pop(get_storefront_client, None)
