import os
import tempfile
from pathlib import Path

_tmpdir = Path(tempfile.mkdtemp(prefix="breweries_test_"))
_db_path = _tmpdir / "test.db"

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_db_path.as_posix()}")
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_DIR", (_tmpdir / "storage").as_posix())
os.environ.setdefault("LOG_DIR", (_tmpdir / "logs").as_posix())

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.main import create_app
from app.models.breweries import Brewery
from app.models.enums import UserRole
from app.models.users import UserAuth
from app.services.storage import LocalImageStorage, UploadedImage, get_storage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class RecordingStorage(LocalImageStorage):
    """Local storage that remembers which paths it was asked to delete."""

    def __init__(self, root):
        super().__init__(root)
        self.deleted: list[str] = []

    def delete(self, path: str) -> bool:
        self.deleted.append(path)
        return super().delete(path)


@pytest.fixture()
def clean_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(clean_db):
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def storage(tmp_path):
    return RecordingStorage(tmp_path / "storage")


@pytest.fixture()
def client(clean_db, storage):
    app = create_app(storage_dir=str(storage.root))
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def register(client):
    """Register a user over HTTP; returns (auth headers, user id)."""

    def _register(email: str, password: str = "password123") -> tuple[dict[str, str], str]:
        r = client.post("/auth/register", json={"email": email, "password": password})
        assert r.status_code == 201, r.text
        headers = auth_header(r.json()["access_token"])
        me = client.get("/me", headers=headers)
        assert me.status_code == 200, me.text
        return headers, me.json()["id"]

    return _register


@pytest.fixture()
def make_admin(db):
    def _make_admin(user_id: str) -> None:
        user = db.get(UserAuth, user_id)
        user.role = UserRole.admin.value
        db.commit()

    return _make_admin


@pytest.fixture()
def user(db):
    u = UserAuth(email="owner@example.com", password_hash="not-a-real-hash")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def brewery_form(**overrides) -> dict:
    data = {
        "name": "River Brew",
        "description": "Small batch ales by the river.",
        "city": "Austin",
        "address": "1 River Rd",
        "latitude": "30.26715000",
        "longitude": "-97.74306000",
        "founded_year": "2012",
        "website": "https://riverbrew.example.com",
        "visitable": "1",
    }
    data.update(overrides)
    return data


def png_upload(name: str = "logo.png", content: bytes = PNG_BYTES) -> UploadedImage:
    return UploadedImage(filename=name, content_type="image/png", content=content)


def make_brewery(db, **fields) -> Brewery:
    values = {
        "name": "Oak House",
        "slug": None,
        "description": "Barrel aged stouts.",
        "city": "Austin",
        "address": "2 Oak St",
        "latitude": Decimal("30.1"),
        "longitude": Decimal("-97.7"),
        "visitable": False,
    }
    values.update(fields)
    if values["slug"] is None:
        values["slug"] = values["name"].lower().replace(" ", "-")
    brewery = Brewery(**values)
    db.add(brewery)
    db.commit()
    db.refresh(brewery)
    return brewery
