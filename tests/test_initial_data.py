from recipebox import crud, schemas
from recipebox.core.config import settings
from recipebox.initial_data import init_db


def test_creates_superuser(db):
    user = init_db(db)

    assert user.email == settings.FIRST_SUPERUSER_EMAIL
    assert user.is_admin is True
    assert crud.verify_password(settings.FIRST_SUPERUSER_PASSWORD, user.hashed_password)


def test_is_idempotent(db):
    first = init_db(db)
    second = init_db(db)
    assert first.id == second.id


def test_promotes_existing_account(db):
    user_in = schemas.UserCreate(
        username="someone", email=settings.FIRST_SUPERUSER_EMAIL, password="another-password"
    )
    existing = crud.create_user(db, user_in)
    assert existing.is_admin is False

    user = init_db(db)
    assert user.id == existing.id
    assert user.is_admin is True


def test_superuser_can_log_in(client, db):
    init_db(db)
    response = client.post(
        "/auth/login",
        json={"email": settings.FIRST_SUPERUSER_EMAIL, "password": settings.FIRST_SUPERUSER_PASSWORD},
    )
    assert response.status_code == 200
    assert response.json()["isAdmin"] is True
