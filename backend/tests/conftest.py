import pytest
from fastapi.testclient import TestClient

from catalogue.config import Settings
from catalogue.db import Database
from catalogue.db.seed import seed_catalogue
from catalogue.main import create_app
from catalogue.services.catalogue_service import CatalogueService


@pytest.fixture
def settings(tmp_path):
    # one throwaway SQLite file per test
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'catalogue.db'}",
        RESET_DB=False,
        SEED_ON_STARTUP=True,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def database(settings):
    """Schema plus default categories, no demo products."""
    database = Database(settings.DATABASE_URL)
    database.init_db()
    s = database.session()
    try:
        seed_catalogue(s, with_products=False)
    finally:
        s.close()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    s = database.session()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def service(db):
    return CatalogueService(db)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    # entering the client runs the lifespan: tables, default categories, demo products
    with TestClient(app) as c:
        yield c


@pytest.fixture
def store(client):
    """A session on the same database the client talks to, for direct row checks."""
    s = client.app.state.db.session()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def product_payload():
    def _make(name="Test Product", skus=("TEST-SKU-1",), **extra):
        variants = [
            {"sku": sku, "name": f"Variant {sku}", "price_cents": 500 + 100 * i, "inventory_count": 10 + i}
            for i, sku in enumerate(skus)
        ]
        payload = {"name": name, "variants": variants}
        payload.update(extra)
        return payload

    return _make
