# reposcribe/handlers/auth.py
import logging
import secrets
import threading
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Optional
from urllib.parse import urlencode

import requests

from ..config import Config
from ..errors import AuthCheckFailed, LoginExchangeFailed
from ..models import User
from ..token_store import TokenStore
from .api import BackendClient, describe_http_error

logger = logging.getLogger(__name__)

CHECK_FAILED_MSG = "Failed to check authentication status"
EXCHANGE_FAILED_MSG = "Failed to complete authentication"

# enough to cover a reload or a few parallel login tabs
RECENT_CODES = 16
PENDING_STATES = 8


@dataclass(frozen=True)
class Session:
    authenticated: bool = False
    user: Optional[User] = None
    loading: bool = True
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "authenticated": self.authenticated,
            "user": self.user.to_dict() if self.user else None,
            "loading": self.loading,
            "error": self.error,
        }


LOGGED_OUT = Session(authenticated=False, user=None, loading=False, error=None)


class SessionManager:
    """Sole writer of the Session value and of the persisted token.

    Each transition swaps in a new immutable Session and notifies the
    subscribers, so readers never see a half-updated state. Subscribers
    run under the session lock and must not call back into the manager.
    """

    def __init__(self, config: Config, tokens: TokenStore, backend: BackendClient):
        self.config = config
        self.tokens = tokens
        self.backend = backend
        self._session = Session()
        self._subscribers: list[Callable[[Session], None]] = []
        self._seen_codes: deque[str] = deque(maxlen=RECENT_CODES)
        self._pending_states: deque[str] = deque(maxlen=PENDING_STATES)
        self._lock = threading.Lock()
        # held across every backend call that rewrites the session
        self._session_lock = threading.Lock()

    @property
    def session(self) -> Session:
        return self._session

    def subscribe(self, callback: Callable[[Session], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _update(self, session: Session) -> None:
        self._session = session
        for cb in list(self._subscribers):
            cb(session)

    # ---------- check ----------
    def _fetch_user(self, token: str) -> User:
        try:
            return User.from_api(self.backend.get_user(token))
        except requests.RequestException as e:
            raise AuthCheckFailed(describe_http_error(e)) from e
        except ValueError as e:
            raise AuthCheckFailed(f"Malformed user response: {e}") from e

    def check_session(self) -> Session:
        with self._session_lock:
            return self._check()

    def restore_session(self) -> Session:
        """check_session() unless another caller already settled the initial check."""
        with self._session_lock:
            if not self._session.loading:
                return self._session
            return self._check()

    def _check(self) -> Session:
        token = self.tokens.get()
        if not token:
            self._update(LOGGED_OUT)
            return self._session

        self._update(replace(self._session, loading=True))
        try:
            user = self._fetch_user(token)
        except AuthCheckFailed as e:
            logger.warning("stored token rejected: %s", e)
            self.tokens.clear()
            self._update(Session(authenticated=False, user=None, loading=False, error=CHECK_FAILED_MSG))
            return self._session

        logger.info("session restored for %s", user.login)
        self._update(Session(authenticated=True, user=user, loading=False, error=None))
        return self._session

    # ---------- login ----------
    def begin_login(self) -> str:
        """Authorization URL the shell should navigate the browser to."""
        state = secrets.token_urlsafe(16)
        with self._lock:
            self._pending_states.append(state)
        params = {
            "redirect_uri": self.config.callback_url,
            "scope": self.config.oauth_scope,
            "state": state,
        }
        if self.config.client_id:
            params["client_id"] = self.config.client_id
        return f"{self.backend.login_url()}?{urlencode(params)}"

    def _claim_code(self, code: str) -> bool:
        with self._lock:
            if code in self._seen_codes:
                return False
            self._seen_codes.append(code)
            return True

    def _claim_state(self, state: Optional[str]) -> bool:
        # the hosted backend does not echo state back, so a missing one passes
        if state is None:
            return True
        with self._lock:
            if not self._pending_states:
                return True
            if state not in self._pending_states:
                return False
            self._pending_states.remove(state)
            return True

    def _exchange(self, code: str) -> tuple[str, User]:
        try:
            data = self.backend.exchange_code(code, self.config.callback_url)
        except requests.RequestException as e:
            raise LoginExchangeFailed(describe_http_error(e)) from e
        if not isinstance(data, dict):
            raise LoginExchangeFailed("Malformed exchange response")
        token = data.get("accessToken")
        if not isinstance(token, str) or not token:
            raise LoginExchangeFailed("Exchange response carried no access token")
        try:
            user = User.from_api(data.get("user"))
        except ValueError as e:
            raise LoginExchangeFailed(f"Malformed user in exchange response: {e}") from e
        return token, user

    def complete_login(self, code: str, state: Optional[str] = None) -> bool:
        """Exchange a one-time code. Returns False when this code was already handled."""
        if not self._claim_code(code):
            logger.info("authorization code already processed, skipping exchange")
            return False

        with self._session_lock:
            self._update(Session(authenticated=False, user=None, loading=True, error=None))
            try:
                if not self._claim_state(state):
                    raise LoginExchangeFailed("OAuth state mismatch")
                token, user = self._exchange(code)
            except LoginExchangeFailed as e:
                logger.warning("login exchange failed: %s", e)
                self._update(Session(authenticated=False, user=None, loading=False, error=EXCHANGE_FAILED_MSG))
                return True

            self.tokens.set(token)
            logger.info("logged in as %s", user.login)
            self._update(Session(authenticated=True, user=user, loading=False, error=None))
            return True

    def accept_token(self, token: str) -> Session:
        """Token handed over directly by the backend's success redirect."""
        with self._session_lock:
            self.tokens.set(token)
            return self._check()

    # ---------- logout ----------
    def end_session(self) -> Session:
        with self._session_lock:
            self.tokens.clear()
            self._update(LOGGED_OUT)
            return self._session
