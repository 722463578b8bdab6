import logging
from sqlalchemy.orm import Session

from recipebox import crud, models, schemas
from recipebox.db.session import SessionLocal, engine
from recipebox.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def init_db(db: Session) -> models.User:
    # Check if superuser exists
    user = crud.get_user_by_email(db, email=settings.FIRST_SUPERUSER_EMAIL)
    if user:
        logger.info(f"Superuser {settings.FIRST_SUPERUSER_EMAIL} already exists.")
        if not user.is_admin:
            user.is_admin = True
            db.add(user)
            db.commit()
            logger.info("Existing user promoted to admin.")
        return user

    logger.info(f"Creating superuser {settings.FIRST_SUPERUSER_EMAIL}...")
    user_in = schemas.UserCreate(
        username=settings.FIRST_SUPERUSER_USERNAME,
        email=settings.FIRST_SUPERUSER_EMAIL,
        password=settings.FIRST_SUPERUSER_PASSWORD,
    )
    user = crud.create_user(db, user_in, is_admin=True)
    logger.info("Superuser created successfully.")
    return user

def main() -> None:
    models.Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()

if __name__ == "__main__":
    main()
