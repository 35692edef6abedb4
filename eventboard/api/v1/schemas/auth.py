from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel

from eventboard.api.v1.schemas.users import UserOut


class LoginIn(BaseModel):
    email: str
    password: str


class AuthTokensOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class MeOut(BaseModel):
    user_id: UUID
    username: str
    email: str
    role_id: int
    role_name: str
    permissions: list[str]
