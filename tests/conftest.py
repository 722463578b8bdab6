import pytest
import shutil
import tempfile
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# It is important to set environment variables before importing app modules
import os
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["ENVIRONMENT"] = "testing"
_MEDIA_ROOT = tempfile.mkdtemp(prefix="recipebox-media-")
os.environ["MEDIA_ROOT"] = _MEDIA_ROOT

from recipebox import crud, schemas
from recipebox.db.session import Base, get_db
from recipebox.main import app
from recipebox.storage import LocalBlobStore, get_blob_store

# Create a test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def db_engine():
    # Create tables
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    yield engine
    # Drop tables
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    os.remove("./test.db")
    shutil.rmtree(_MEDIA_ROOT, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_tables(db_engine):
    yield
    with db_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="function")
def db(db_engine) -> Generator:
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def blob_store(tmp_path):
    store = LocalBlobStore(str(tmp_path / "media"), "/media")
    app.dependency_overrides[get_blob_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_blob_store, None)


@pytest.fixture(scope="module")
def client() -> Generator:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(client, db):
    """
    Factory: create a user directly and log in. Returns (user, auth_headers).
    """
    counter = {"n": 0}

    def _make_user(username="cook", password="password", is_admin=False):
        counter["n"] += 1
        email = f"{username}{counter['n']}@example.com"
        user_in = schemas.UserCreate(username=username, email=email, password=password)
        user = crud.create_user(db, user_in, is_admin=is_admin)
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        token = response.json()["token"]
        return user, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest.fixture
def recipe_payload():
    """
    Factory for a valid recipe payload; keyword arguments override fields.
    """

    def _recipe_payload(**overrides):
        payload = {
            "title": "Soup",
            "description": "A warming vegetable soup",
            "categories": ["Обед", "Горячее блюдо"],
            "servings": 4,
            "cookingTime": 45,
            "ingredients": ["Potato", "Salt"],
            "ingredientQuantities": [500, 0],
            "ingredientUnits": ["г", "пв"],
            "steps": [
                {"description": "Peel and dice the potatoes"},
                {"description": "Boil for 30 minutes and season"},
            ],
        }
        payload.update(overrides)
        return payload

    return _recipe_payload


@pytest.fixture
def create_recipe(client, recipe_payload):
    """
    Factory: submit a recipe through the API and return its JSON.
    """

    def _create_recipe(headers, **overrides):
        response = client.post("/recipes", json=recipe_payload(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create_recipe


@pytest.fixture
def published_recipe(client, make_user, create_recipe):
    """
    A recipe by a fresh author, approved by a fresh admin.
    Returns (recipe_json, author_headers, admin_headers).
    """
    _, author_headers = make_user("author")
    _, admin_headers = make_user("moderator", is_admin=True)
    recipe = create_recipe(author_headers)
    response = client.put(f"/recipes/{recipe['id']}/approve", headers=admin_headers)
    assert response.status_code == 200, response.text
    return response.json(), author_headers, admin_headers
