# rectrack/app/services/session_oracle.py
from __future__ import annotations

import logging
from typing import Optional, Protocol

from rectrack.app.infra.auth.supabase_auth import AuthUser

logger = logging.getLogger(__name__)


class UserLookup(Protocol):
    def get_user(self, access_token: str) -> Optional[AuthUser]: ...


class IdentitySource(Protocol):
    def current_user_id(self) -> Optional[str]: ...


class SessionOracle:
    """
    Answers whether the caller is signed in.

    Every call asks the auth provider again; nothing is cached. Any failure
    to reach the provider counts as "not signed in".
    """

    def __init__(self, auth: UserLookup, access_token: Optional[str] = None):
        self._auth = auth
        self._access_token = access_token

    def current_user(self) -> Optional[AuthUser]:
        if not self._access_token:
            return None
        try:
            return self._auth.get_user(self._access_token)
        except Exception as exc:
            logger.warning("Auth provider unavailable, treating caller as visitor: %s", exc)
            return None

    def current_user_id(self) -> Optional[str]:
        user = self.current_user()
        return user.id if user else None

    def is_authenticated(self) -> bool:
        return self.current_user_id() is not None


class ResolvedSession:
    """
    Identity already settled for the current request.

    Lets one request keep the answer it used to choose its cache scope, so
    the backend it reads from always matches that scope.
    """

    def __init__(self, user_id: Optional[str]):
        self._user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def is_authenticated(self) -> bool:
        return self._user_id is not None
