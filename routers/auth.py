from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response
from itsdangerous import BadData, URLSafeTimedSerializer
from loguru import logger
from sqlalchemy.exc import IntegrityError

import repository
import settings
from db import StoreDep, read_or
from models import Role, User
from passwords import hash_password, verify_password
from schemas import AuthResult, LoginData, SignupData, UserRead

router = APIRouter(prefix="/auth", tags=["auth"])

COOKIE_NAME = "session"

serializer = URLSafeTimedSerializer(settings.SESSION_SECRET, salt="eizer-session")


def create_session_token(user_id: int) -> str:
    """
    Store the user id in the signed token.
    The role is looked up on every request, never taken from the cookie.
    """
    return serializer.dumps({"user_id": user_id})


def verify_session_token(token: str, max_age_seconds: int = settings.SESSION_MAX_AGE):
    """
    Returns dict {'user_id': ...} if valid,
    or None if token is invalid/expired.
    """
    try:
        return serializer.loads(token, max_age=max_age_seconds)
    except BadData:
        return None


def _user_from_token(store: StoreDep, token: Optional[str]) -> Optional[User]:
    if token is None:
        return None
    data = verify_session_token(token)
    if not data or "user_id" not in data:
        return None
    return read_or(None, repository.get_user_by_id, store, data["user_id"])


def get_optional_user(
    store: StoreDep,
    session_token: Optional[str] = Cookie(default=None, alias=COOKIE_NAME),
) -> Optional[User]:
    """The logged-in user, or None instead of raising."""
    return _user_from_token(store, session_token)


OptionalUserDep = Annotated[Optional[User], Depends(get_optional_user)]


def get_current_user(
    store: StoreDep,
    session_token: Optional[str] = Cookie(default=None, alias=COOKIE_NAME),
) -> User:
    """
    Reads the 'session' cookie, verifies the token and looks up the user.
    Raises 401 if not logged in / invalid.
    """
    if session_token is None:
        raise HTTPException(status_code=401, detail="Not logged in")

    user = _user_from_token(store, session_token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(user: CurrentUserDep) -> User:
    if user.role != Role.admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


AdminUserDep = Annotated[User, Depends(require_admin)]


def set_session_cookie(response: Response, user_id: int) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=create_session_token(user_id),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.SESSION_MAX_AGE,
    )


@router.get("/me", response_model=Optional[UserRead])
def read_me(current: OptionalUserDep):
    """
    The currently logged-in user, or null.
    """
    return current


@router.post("/login", response_model=AuthResult)
def login(payload: LoginData, store: StoreDep, response: Response):
    """
    Log in with username or email + password and set a signed cookie.

    Unknown users, users without a password and wrong passwords all get the
    same error.
    """
    user = read_or(None, repository.get_user_by_username_or_email, store, payload.username_or_email)
    credential = read_or(None, repository.get_credential, store, user.id) if user else None

    if credential is None or not verify_password(payload.password, credential.password_hash):
        logger.info("Rejected login for {}", payload.username_or_email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user = repository.update_user_last_signed_in(store, user.id) or user
    set_session_cookie(response, user.id)
    logger.info("User {} logged in", user.id)
    return AuthResult(user=UserRead.model_validate(user))


@router.post("/signup", response_model=AuthResult)
def signup(payload: SignupData, store: StoreDep):
    """
    Register a new password account with role "user".
    Does not log the new user in.
    """
    if read_or(None, repository.get_user_by_username_or_email, store, payload.username):
        raise HTTPException(status_code=409, detail="Username already exists")

    if read_or(None, repository.get_user_by_username_or_email, store, payload.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        open_id=f"local:{payload.username}",
        username=payload.username,
        email=payload.email,
        name=payload.name or payload.username,
        role=Role.user,
        login_method="password",
    )
    try:
        user = repository.create_user(store, user, hash_password(payload.password))
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Username already exists")

    logger.info("Registered user {} ({})", user.id, user.username)
    return AuthResult(user=UserRead.model_validate(user))


@router.post("/logout")
def logout(response: Response):
    """
    Clear the session cookie.
    """
    response.delete_cookie(
        COOKIE_NAME, httponly=True, secure=settings.COOKIE_SECURE, samesite="lax"
    )
    return {"success": True}
