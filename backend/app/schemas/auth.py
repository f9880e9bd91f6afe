from datetime import datetime

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import Role


class SignIn(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class UserRead(BaseModel):
    id: str
    username: str
    role: Role

    class Config:
        from_attributes = True


class SessionRead(BaseModel):
    token: str
    expires_at: datetime
    user: UserRead
