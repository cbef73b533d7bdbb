# Pydantic schemas for login/session requests and responses

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, field_validator

from core.auth import Session


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("username is required")
        return v


class SessionRead(BaseModel):
    username: str
    role: Literal["admin", "production"]
    created_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> "SessionRead":
        return cls(username=session.username, role=session.role.value, created_at=session.created_at)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    session: SessionRead
