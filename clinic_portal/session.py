"""
Session model: the single owner of the portal's authentication state.

    INITIALIZING --initialize()--> ANONYMOUS | AUTHENTICATED
    any state    --login(token)--> AUTHENTICATED   (state untouched on DecodeError)
    any state    --logout()-----> ANONYMOUS       (store cleared, navigate to entry)
"""

import logging
from enum import Enum
from typing import Callable, Optional

from clinic_portal.auth import UserSession, decode_credential
from clinic_portal.exceptions import DecodeError, Unauthenticated
from clinic_portal.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class SessionManager:
    def __init__(self, token_store: TokenStore, on_logout: Optional[Callable[[], None]] = None):
        self.token_store = token_store
        self.on_logout = on_logout
        self._state = SessionState.INITIALIZING
        self._session: Optional[UserSession] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[UserSession]:
        return self._session

    @property
    def is_loading(self) -> bool:
        return self._state is SessionState.INITIALIZING

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    def _set(self, state: SessionState, session: Optional[UserSession]) -> None:
        self._state = state
        self._session = session

    def initialize(self) -> SessionState:
        token = self.token_store.read()
        if not token:
            self._set(SessionState.ANONYMOUS, None)
            return self._state
        try:
            session = decode_credential(token)
        except DecodeError as e:
            logger.warning("Discarding stored credential: %s", e.reason)
            self.token_store.clear()
            self._set(SessionState.ANONYMOUS, None)
            return self._state
        self._set(SessionState.AUTHENTICATED, session)
        logger.info("Restored session for %s (%s)", session.username, session.role)
        return self._state

    def login(self, token: str) -> UserSession:
        session = decode_credential(token)
        self.token_store.save(token)
        self._set(SessionState.AUTHENTICATED, session)
        logger.info("Logged in as %s (%s)", session.username, session.role)
        return session

    def logout(self) -> None:
        self.token_store.clear()
        self._set(SessionState.ANONYMOUS, None)
        logger.info("Logged out")
        if self.on_logout is not None:
            self.on_logout()

    def ensure_authenticated(self) -> UserSession:
        if self._session is None:
            raise Unauthenticated("Not signed in")
        return self._session
