import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient  # noqa: E402

from vapetrack.crud.products import create_product  # noqa: E402
from vapetrack.crud.users import create_user, initialize_app  # noqa: E402
from vapetrack.db.session import get_db, init_db  # noqa: E402
from vapetrack.main import app  # noqa: E402

ADMIN_PASSWORD = "owner-pass"
STAFF_PASSWORD = "staff-pass"


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def db_session():
    engine = _memory_engine()
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    init_db(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def owner(db_session):
    return initialize_app(
        db_session,
        {
            "company_name": "Cloud Nine Vapes",
            "admin_name": "Owner",
            "admin_email": "owner@example.com",
            "admin_password": ADMIN_PASSWORD,
            "initial_cash": 5000,
        },
    )


@pytest.fixture()
def staff(db_session, owner):
    return create_user(
        db_session,
        {"name": "Sita", "email": "sita@example.com", "role": "staff", "password": STAFF_PASSWORD},
        actor=owner.name,
    )


def add_product(db, *, name="Elf Bar", model_name="BC5000", flavor_name="Mango", stock=10, cost=100.0, price=150.0, **extra):
    payload = {
        "name": name,
        "model_name": model_name,
        "flavor_name": flavor_name,
        "category": "Disposables",
        "cost_price": cost,
        "selling_price": price,
        "total_acquired_stock": stock,
        "acquisition_payment": {"method": "Cash", "total_acquisition_cost": cost * stock},
    }
    payload.update(extra)
    return create_product(db, payload, actor="Owner")


@pytest.fixture()
def product_factory(db_session):
    def _make(**kwargs):
        return add_product(db_session, **kwargs)

    return _make


@pytest.fixture()
def api(db_session):
    """TestClient bound to the test session; startup hooks are not run."""

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    client = TestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.clear()


def login(client, identifier, password, role=None):
    body = {"identifier": identifier, "password": password}
    if role:
        body["role"] = role
    return client.post("/api/auth/login", json=body)


@pytest.fixture()
def admin_api(api, owner):
    resp = login(api, "owner@example.com", ADMIN_PASSWORD, role="admin")
    assert resp.status_code == 200, resp.text
    return api


@pytest.fixture()
def staff_api(api, staff):
    resp = login(api, "Sita", STAFF_PASSWORD)
    assert resp.status_code == 200, resp.text
    return api
