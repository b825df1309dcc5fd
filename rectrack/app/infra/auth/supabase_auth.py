# rectrack/app/infra/auth/supabase_auth.py
"""
Thin wrapper around Supabase GoTrue.
Sign-in and sign-up run on a throwaway client so the shared service-role
client never adopts a user session.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from supabase import Client

from rectrack.app.domain.errors import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass
class AuthSession:
    user: AuthUser
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_established(self) -> bool:
        """False when sign-up is waiting for e-mail confirmation."""
        return bool(self.access_token)


def _to_auth_user(user: Any) -> AuthUser:
    name = None
    meta = getattr(user, "user_metadata", None) or {}
    if isinstance(meta, dict):
        name = meta.get("name")
    return AuthUser(id=str(user.id), email=getattr(user, "email", None), name=name)


def _to_auth_session(response: Any) -> AuthSession:
    user = getattr(response, "user", None)
    if not user:
        raise AuthenticationError("Auth provider returned no user")
    session = getattr(response, "session", None)
    return AuthSession(
        user=_to_auth_user(user),
        access_token=getattr(session, "access_token", None) if session else None,
        refresh_token=getattr(session, "refresh_token", None) if session else None,
    )


class SupabaseAuthGateway:
    """Session retrieval, sign-up, sign-in and sign-out against Supabase auth."""

    def __init__(self, client: Client, client_factory: Callable[[], Client]):
        self._client = client
        self._client_factory = client_factory

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        """Validate a token; network and auth errors propagate to the caller."""
        res = self._client.auth.get_user(access_token)
        user = getattr(res, "user", None) if res else None
        return _to_auth_user(user) if user else None

    def sign_up(self, email: str, password: str, name: Optional[str] = None) -> AuthSession:
        credentials: dict[str, Any] = {"email": email, "password": password}
        if name:
            credentials["options"] = {"data": {"name": name}}
        try:
            response = self._client_factory().auth.sign_up(credentials)
        except Exception as exc:
            logger.warning("Sign-up rejected: email=%s, error=%s", email, exc)
            raise AuthenticationError(str(exc)) from exc
        session = _to_auth_session(response)
        logger.info("Account created: user=%s, session=%s", session.user.id, session.is_established)
        return session

    def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = self._client_factory().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as exc:
            logger.warning("Sign-in rejected: email=%s, error=%s", email, exc)
            raise AuthenticationError("Invalid email or password") from exc
        return _to_auth_session(response)

    def sign_out(self, access_token: str) -> None:
        try:
            self._client.auth.admin.sign_out(access_token)
        except Exception as exc:
            # the token is dropped client-side either way
            logger.warning("Sign-out failed: %s", exc)
