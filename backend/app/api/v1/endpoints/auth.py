from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, get_db, get_token
from backend.app.db.models.models_v1 import User
from backend.app.schemas.auth import SessionRead, SignIn, UserRead
from backend.services import auth as auth_service

router = APIRouter(prefix="/auth")


@router.post("/sign-in", response_model=SessionRead)
def sign_in(
    payload: SignIn,
    response: Response,
    current_token: str | None = Depends(get_token),
    db: Session = Depends(get_db),
):
    session = auth_service.sign_in(db, payload.username, payload.password, current_token=current_token)
    response.set_cookie("token", session.token, httponly=True, samesite="lax")
    return SessionRead(
        token=session.token,
        expires_at=session.expires_at,
        user=UserRead.model_validate(session.user),
    )


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/sign-out")
def sign_out(
    response: Response,
    user: User = Depends(get_current_user),
    token: str | None = Depends(get_token),
    db: Session = Depends(get_db),
):
    auth_service.sign_out(db, token)
    response.delete_cookie("token")
    return {"id": user.id}
