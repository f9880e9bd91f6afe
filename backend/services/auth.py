from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.core.config import SESSION_TTL_HOURS
from backend.app.core.logging import get_logger
from backend.app.db.models.core_types import Role
from backend.app.db.models.models_v1 import User, UserSession
from backend.services.errors import (
    AlreadySignedInError,
    AuthenticationError,
    DuplicateNameError,
    PermissionDeniedError,
)

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # hash illisible (ex: ancien PIN en clair)
        return False


def create_user(db: Session, username: str, password: str, role: Role = Role.guest) -> User:
    if db.execute(select(User.id).where(User.username == username)).first():
        raise DuplicateNameError("User", username)
    user = User(username=username, password_hash=hash_password(password), role=role)
    db.add(user)
    db.commit()
    return user


def _as_aware(dt: datetime) -> datetime:
    # SQLite rend des datetimes naïfs
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def sign_in(db: Session, username: str, password: str, current_token: str | None = None) -> UserSession:
    if current_token and _active_session(db, current_token):
        logger.warning("sign in refused", extra={"action": "SIGN_IN", "status": False, "username": username})
        raise AlreadySignedInError()

    user = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
    if not user or not verify_password(password, user.password_hash):
        logger.warning("sign in refused", extra={"action": "SIGN_IN", "status": False, "username": username})
        raise AuthenticationError("Invalid username or password")

    now = datetime.now(timezone.utc)
    session = UserSession(
        token=secrets.token_urlsafe(32),
        user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(hours=SESSION_TTL_HOURS),
    )
    user.last_login_at = now
    db.add(session)
    db.commit()

    logger.info("signed in", extra={"action": "SIGN_IN", "status": True, "user_id": user.id})
    return session


def _active_session(db: Session, token: str) -> UserSession | None:
    session = db.get(UserSession, token)
    if not session or _as_aware(session.expires_at) <= datetime.now(timezone.utc):
        return None
    return session


def resolve_session(db: Session, token: str | None) -> User:
    if not token:
        raise AuthenticationError("No token provided")

    session = _active_session(db, token)
    if not session:
        raise AuthenticationError("Invalid token")
    return session.user


def sign_out(db: Session, token: str) -> None:
    session = db.get(UserSession, token)
    if session:
        db.delete(session)
        db.commit()
        logger.info("signed out", extra={"action": "SIGN_OUT", "status": True, "user_id": session.user_id})


def check_role(user: User, allowed: set[Role]) -> User:
    if user.role not in allowed:
        raise PermissionDeniedError("Forbidden access")
    return user
