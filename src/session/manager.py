from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from src.api.paisa_client import PaisaClient
from src.data.token_store import TokenStore
from src.models.errors import AuthError, AuthErrorKind, NetworkError, PredictError
from src.models.schemas import User

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNKNOWN = "UNKNOWN"
    AUTHENTICATED = "AUTHENTICATED"
    ANONYMOUS = "ANONYMOUS"


class SessionManager:
    """Owns the bearer token and the signed-in user.

    The token is read from ``store`` once in ``init``; after that every change
    is written through to the store and the in-memory copy is what the API
    client sees on each request.
    """

    def __init__(self, client: PaisaClient, store: TokenStore) -> None:
        self.client = client
        self.store = store
        self.user: Optional[User] = None
        self.state = SessionState.UNKNOWN
        self._token: Optional[str] = None
        self._initialized = False

        client.token_provider = self.token
        client.on_unauthorized = self._invalidate

    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin if self.user is not None else False

    def init(self) -> Optional[User]:
        if not self._initialized:
            self._token = self.store.load_token()
            self._initialized = True
        return self.refresh_user()

    def _set_token(self, token: Optional[str]) -> None:
        self._token = token
        if token is None:
            self.store.clear_token()
        else:
            self.store.save_token(token)

    def _invalidate(self) -> None:
        if self._token is not None:
            logger.info("Session token invalidated")
        self._set_token(None)
        self.user = None
        self.state = SessionState.ANONYMOUS

    def refresh_user(self) -> Optional[User]:
        """Reload the profile; an expired or missing session degrades to anonymous."""
        if not self._initialized:
            self._token = self.store.load_token()
            self._initialized = True

        if self._token is None:
            self.user = None
            self.state = SessionState.ANONYMOUS
            return None

        try:
            user = self.client.get_current_user()
        except PredictError as exc:
            logger.info("Profile refresh failed, signing out: %s", exc)
            self._invalidate()
            return None

        self.user = user
        self.state = SessionState.AUTHENTICATED
        return user

    def login(self, email: str, password: str) -> User:
        try:
            token = self.client.signin(email, password)
        except NetworkError as exc:
            if exc.status_code is not None and 400 <= exc.status_code < 500:
                raise AuthError(AuthErrorKind.INVALID_CREDENTIALS, exc.message, exc.field_errors) from exc
            raise

        self._initialized = True
        self._set_token(token)
        user = self.refresh_user()
        if user is None:
            raise AuthError(AuthErrorKind.SESSION_EXPIRED, "Signed in, but the profile could not be loaded")
        logger.info("Signed in as %s", user.email)
        return user

    def signup(self, email: str, password: str) -> None:
        """Register an account. The caller still has to ``login`` afterwards."""
        try:
            self.client.signup(email, password)
        except NetworkError as exc:
            if exc.status_code is not None and 400 <= exc.status_code < 500:
                raise AuthError(AuthErrorKind.VALIDATION_FAILED, exc.message, exc.field_errors) from exc
            raise
        logger.info("Account created for %s", email)

    def logout(self) -> None:
        self._initialized = True
        self._set_token(None)
        self.user = None
        self.state = SessionState.ANONYMOUS

    def require_user(self) -> User:
        if self.state is SessionState.UNKNOWN:
            self.refresh_user()
        if self.user is None:
            raise AuthError(AuthErrorKind.NOT_AUTHENTICATED, "Sign in to continue")
        return self.user

    def require_admin(self) -> User:
        user = self.require_user()
        if not user.is_admin:
            raise AuthError(AuthErrorKind.NOT_AUTHENTICATED, "Administrator access required")
        return user
