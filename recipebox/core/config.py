from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "RecipeBox API"
    ROOT_PATH: str = ""
    ENVIRONMENT: str = "development"
    SECRET_KEY: str = "your-super-secret-key"  # Default for dev, override in prod
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALGORITHM: str = "HS256"

    # When set, admins must present this code to receive an admin-flagged token
    ADMIN_ELEVATION_CODE: Optional[str] = None

    FIRST_SUPERUSER_USERNAME: str = "admin"
    FIRST_SUPERUSER_EMAIL: str = "admin@example.com"
    FIRST_SUPERUSER_PASSWORD: str = "admin123"

    # Database
    DATABASE_URL: str = "sqlite:///./recipes.db"

    # Blob storage for uploaded images
    MEDIA_ROOT: str = "./media"
    MEDIA_URL: str = "/media"
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    UPLOAD_WORKERS: int = 4

    LOGGING_CONFIG: str = "logging.ini"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:8080",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()
