from __future__ import annotations

from typing import Callable, Generator

from fastapi import Cookie, Depends, Header
from sqlalchemy.orm import Session

from backend.app.db.models.core_types import Role
from backend.app.db.models.models_v1 import User
from backend.app.db.session import SessionLocal
from backend.services.auth import check_role, resolve_session


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_token(
    authorization: str | None = Header(default=None),
    token: str | None = Cookie(default=None),
) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return token


def get_current_user(
    token: str | None = Depends(get_token),
    db: Session = Depends(get_db),
) -> User:
    return resolve_session(db, token)


def require_role(*roles: Role) -> Callable[..., User]:
    """Dépendance réutilisable : ``Depends(require_role(Role.admin))``."""
    allowed = set(roles)

    def _dependency(user: User = Depends(get_current_user)) -> User:
        return check_role(user, allowed)

    return _dependency
