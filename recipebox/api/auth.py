# api/auth.py
# Handles user registration, login, admin session elevation and the access gate.

import logging
import secrets
from datetime import timedelta, datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

# Import local modules
from recipebox import crud
from recipebox import schemas
from recipebox import models
from recipebox.db.session import get_db
from recipebox.core.config import settings
from recipebox.core.errors import Forbidden, InvalidInput, Unauthenticated
from recipebox.core.identity import Identity
from recipebox.core.rate_limit import limiter, AUTH_RATE_LIMIT

# OAuth2 scheme definition; only used to pull the bearer token out of the header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

# Create an API router
router = APIRouter()

# Get a logger instance
logger = logging.getLogger(__name__)


# --- Utility Functions for JWT ---

def create_access_token(identity: Identity, expires_delta: timedelta | None = None):
    """
    Creates a new JWT access token carrying the subject id and admin flag.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"sub": str(identity.user_id), "admin": identity.is_admin, "exp": expire}
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Identity:
    """
    Verifies a token and returns the identity it carries.
    Expired, tampered or malformed tokens raise Unauthenticated.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        logger.warning("Invalid Auth Token")
        raise Unauthenticated()

    subject = payload.get("sub")
    is_admin = payload.get("admin", False)
    if subject is None or not isinstance(is_admin, bool):
        logger.warning("Auth token has an invalid payload")
        raise Unauthenticated("Invalid token payload")
    try:
        user_id = UUID(subject)
    except (TypeError, ValueError):
        logger.warning("Auth token subject is not a user id")
        raise Unauthenticated("Invalid token payload")
    return Identity(user_id=user_id, is_admin=is_admin)


# --- Dependency for Getting the Acting Identity ---

async def get_current_identity(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Identity:
    """
    Access gate: resolves the bearer token into the acting identity.
    No database lookup is made; everything needed is inside the signed token.
    """
    if not token:
        raise Unauthenticated("Not authenticated")
    identity = decode_access_token(token)
    request.state.identity = identity
    logger.debug(f"Authenticated user {identity.user_id} (admin={identity.is_admin})")
    return identity


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _elevate(db: Session, request: Request, user: models.User, code: str) -> None:
    """
    Privileged session elevation. Every attempt is written to the audit trail.
    """
    expected = settings.ADMIN_ELEVATION_CODE
    if not user.is_admin:
        reason = "account is not an admin"
    elif expected and secrets.compare_digest(code.encode(), expected.encode()):
        reason = None
    elif not expected:
        reason = "elevation code is not configured"
    else:
        reason = "invalid elevation code"

    granted = reason is None
    crud.record_elevation(db, user.id, granted=granted, reason=reason, client_ip=_client_ip(request))
    if not granted:
        logger.warning(f"Admin elevation denied for user {user.id}: {reason}")
        raise Forbidden("Admin elevation denied")
    logger.warning(f"Admin elevation granted for user {user.id}")


# --- Authentication Endpoints ---

@router.post("/register", response_model=schemas.RegisterResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def register(request: Request, user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user and log them in.
    """
    if crud.get_user_by_email(db, email=user_in.email):
        logger.warning(f"Registration with an existing email: {user_in.email}")
        raise InvalidInput("A user with this email already exists", field="email")
    user = crud.create_user(db, user_in)
    logger.info(f"Registered user {user.id}")
    token = create_access_token(Identity(user_id=user.id, is_admin=False))
    return {"token": token, "user_id": user.id}


@router.post("/login", response_model=schemas.LoginResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def login(request: Request, credentials: schemas.LoginRequest, db: Session = Depends(get_db)):
    """
    Log in with email and password.

    Admins receive an admin session directly when no elevation code is
    configured; otherwise they must pass `code`.
    """
    user = crud.get_user_by_email(db, email=credentials.email)
    if not user or not crud.verify_password(credentials.password, user.hashed_password):
        logger.warning("Incorrect email or password")
        raise InvalidInput("Invalid credentials")

    if credentials.code is not None:
        _elevate(db, request, user, credentials.code)
        is_admin = True
    else:
        is_admin = bool(user.is_admin) and not settings.ADMIN_ELEVATION_CODE

    token = create_access_token(Identity(user_id=user.id, is_admin=is_admin))
    return {"token": token, "user_id": user.id, "is_admin": is_admin}


@router.post("/elevate", response_model=schemas.LoginResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def elevate(
    request: Request,
    body: schemas.ElevateRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Exchange a regular session of an admin account for an admin session.
    """
    user = crud.get_user(db, identity.user_id)
    if user is None:
        raise Unauthenticated("User not found")
    _elevate(db, request, user, body.code)
    token = create_access_token(Identity(user_id=user.id, is_admin=True))
    return {"token": token, "user_id": user.id, "is_admin": True}
