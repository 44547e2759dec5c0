import io
import os
import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker

# CRITICAL: Set test database URL BEFORE importing any realty modules
# This prevents realty.database from connecting to a real database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TESTING"] = "true"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from realty.main import app
from realty.config import settings
from realty.database import Base, register_sqlite_functions
from realty.services.auth_service import create_access_token, ensure_admin
import realty.database as db_module

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "s3cret-pass"

ROUTER_MODULES = [
    "realty.routers.auth",
    "realty.routers.properties",
    "realty.routers.images",
    "realty.routers.documents",
    "realty.routers.pages",
    "realty.routers.sections",
    "realty.routers.services",
    "realty.main",
]


@pytest.fixture(scope="session")
def test_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # share same in-memory DB across connections
    )
    return register_sqlite_functions(engine)


@pytest.fixture()
def db_session(test_engine):
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    # Fresh schema per test to avoid cross-test data
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def patch_sessionlocal(monkeypatch, test_engine, db_session, tmp_path):
    monkeypatch.setattr(db_module, "engine", test_engine, raising=False)

    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    monkeypatch.setattr(db_module, "SessionLocal", TestingSessionLocal, raising=True)

    # Every router has its own get_db() that calls the module's SessionLocal
    for module_path in ROUTER_MODULES:
        module = __import__(module_path, fromlist=[""])
        if hasattr(module, "SessionLocal"):
            monkeypatch.setattr(module, "SessionLocal", TestingSessionLocal, raising=False)

    # Uploads go to a throwaway directory per test
    monkeypatch.setattr(settings, "UPLOADS_DIR", str(tmp_path / "uploads"))

    # Disable rate limiter globally for tests
    if hasattr(app.state, "limiter"):
        setattr(app.state.limiter, "enabled", False)
    yield


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def admin_user(db_session):
    return ensure_admin(db_session, ADMIN_EMAIL, ADMIN_PASSWORD, "Admin")


@pytest.fixture()
def admin_headers(admin_user):
    token = create_access_token(admin_user.email, admin_user.id, admin_user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def editor_headers():
    token = create_access_token("editor@example.com", "editor-id", "editor")
    return {"Authorization": f"Bearer {token}"}


def make_image_bytes(fmt: str = "JPEG", size=(640, 480), color=(200, 120, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_pdf_bytes() -> bytes:
    return (
        b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n"
        b"trailer << /Root 1 0 R >>\n%%EOF\n"
    )


def property_payload(**overrides) -> dict:
    payload = {
        "title": "Sunny two-room flat",
        "description": "Close to the metro",
        "price": 125000,
        "currency": "EUR",
        "transaction_type": "sale",
        "property_type": "2-СТАЕН",
        "city_region": "София",
        "district": "Лозенец",
        "area": 68.5,
        "bedrooms": 1,
        "bathrooms": 1,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def create_property(client, admin_headers):
    def _create(**overrides) -> dict:
        res = client.post("/properties", json=property_payload(**overrides), headers=admin_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _create


@pytest.fixture()
def upload_image(client, admin_headers):
    def _upload(property_id: str, filename: str = "photo.jpg", **fields):
        data = {"property_id": property_id}
        data.update({k: str(v) for k, v in fields.items()})
        return client.post(
            "/images/upload",
            data=data,
            files={"image": (filename, make_image_bytes(), "image/jpeg")},
            headers=admin_headers,
        )

    return _upload
