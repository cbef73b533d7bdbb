"""Login sessions for the two built-in roles.

A ``CredentialProvider`` turns a username/password into a ``Session``; the
``SessionRegistry`` maps bearer tokens to open sessions. Route handlers get
the caller's session through the ``current_session`` / ``require_admin``
dependencies and pass it on explicitly.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Protocol

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, settings
from core.errors import NotAuthenticated, NotAuthorized

logger = structlog.get_logger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    PRODUCTION = "production"


@dataclass(frozen=True)
class Session:
    username: str
    role: Role
    token: str = field(default_factory=lambda: secrets.token_urlsafe(32), repr=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class CredentialProvider(Protocol):
    def authenticate(self, username: str, password: str) -> Optional[Session]: ...


@dataclass(frozen=True)
class _Account:
    login: str
    password: str
    display_name: str
    role: Role


class StaticCredentialProvider:
    """Two fixed accounts read from configuration. Usernames are case-insensitive."""

    def __init__(self, config: Settings = settings):
        self._accounts = [
            _Account(config.admin_username.lower(), config.admin_password, "Admin", Role.ADMIN),
            _Account(config.production_username.lower(), config.production_password, "Production", Role.PRODUCTION),
        ]

    def authenticate(self, username: str, password: str) -> Optional[Session]:
        login = (username or "").strip().lower()
        for account in self._accounts:
            if secrets.compare_digest(login, account.login) and secrets.compare_digest(
                password or "", account.password
            ):
                return Session(username=account.display_name, role=account.role)
        return None


class SessionRegistry:
    def __init__(self, provider: CredentialProvider):
        self.provider = provider
        self._sessions: Dict[str, Session] = {}

    def open(self, username: str, password: str) -> Session:
        session = self.provider.authenticate(username, password)
        if session is None:
            logger.info("Login rejected", username=username)
            raise NotAuthenticated("Invalid username or password")
        self._sessions[session.token] = session
        logger.info("Login", username=session.username, role=session.role.value)
        return session

    def resolve(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        return self._sessions.get(token)

    def close(self, token: str) -> bool:
        session = self._sessions.pop(token, None)
        if session is not None:
            logger.info("Logout", username=session.username)
        return session is not None


bearer_scheme = HTTPBearer(auto_error=False)


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


async def current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    registry: SessionRegistry = Depends(get_session_registry),
) -> Session:
    session = registry.resolve(credentials.credentials if credentials else None)
    if session is None:
        raise NotAuthenticated("Login required")
    return session


async def require_admin(session: Session = Depends(current_session)) -> Session:
    if not session.is_admin:
        raise NotAuthorized("Admin role required")
    return session


def ensure_admin(session: Optional[Session]) -> Session:
    """Role check for code paths reached without FastAPI dependencies."""
    if session is None:
        raise NotAuthenticated("Login required")
    if not session.is_admin:
        raise NotAuthorized("Admin role required")
    return session
