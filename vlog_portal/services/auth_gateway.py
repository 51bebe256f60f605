# vlog_portal/services/auth_gateway.py
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import sessionmaker

from vlog_portal.core.exceptions import InvalidCredentialError, InvalidEmailError
from vlog_portal.core.security import (
    authenticate_user,
    create_access_token,
    resolve_token_user,
    revoke_token,
)
from vlog_portal.schemas.user import UserPublic
from vlog_portal.services.subscription import Subscription

logger = logging.getLogger(__name__)

AuthListener = Callable[[Optional[UserPublic]], None]


@dataclass(frozen=True)
class AuthSession:
    user: UserPublic
    access_token: str


class AuthGateway:
    """
    Credential sign-in/out for one client session, with change notification.

    Listeners registered through on_auth_state_changed() fire immediately
    with the current user (None before sign-in) and then on every
    transition, so dependent components can gate data access on it.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._session: Optional[AuthSession] = None
        self._listeners: Dict[int, AuthListener] = {}
        self._lock = threading.Lock()
        self._keys = itertools.count(1)

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def current_user(self) -> Optional[UserPublic]:
        return self._session.user if self._session else None

    def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            email = validate_email(email, check_deliverability=False).normalized
        except EmailNotValidError as exc:
            raise InvalidEmailError("Invalid email format.") from exc

        with self._session_factory() as db:
            user = authenticate_user(db, email, password)
            if user is None:
                logger.warning("Failed sign-in for %s", email)
                raise InvalidCredentialError("Incorrect email or password.")
            public = UserPublic.model_validate(user)

        session = AuthSession(
            user=public,
            access_token=create_access_token(data={"sub": public.email}),
        )
        logger.info("Teacher %s signed in", public.email)
        self._set_session(session)
        return session

    def resume(self, access_token: str) -> AuthSession:
        """Restore a session from a previously issued token."""
        with self._session_factory() as db:
            user = resolve_token_user(db, access_token)
            if user is None:
                raise InvalidCredentialError("Session expired or signed out. Please sign in again.")
            public = UserPublic.model_validate(user)

        session = AuthSession(user=public, access_token=access_token)
        self._set_session(session)
        return session

    def sign_out(self) -> None:
        session = self._session
        if session is None:
            return
        with self._session_factory() as db:
            revoke_token(db, session.access_token)
        logger.info("Teacher %s signed out", session.user.email)
        self._set_session(None)

    def on_auth_state_changed(self, listener: AuthListener) -> Subscription:
        key = next(self._keys)
        with self._lock:
            self._listeners[key] = listener
        listener(self.current_user)
        return Subscription(lambda: self._remove(key))

    def _remove(self, key: int) -> None:
        with self._lock:
            self._listeners.pop(key, None)

    def _set_session(self, session: Optional[AuthSession]) -> None:
        self._session = session
        with self._lock:
            listeners = list(self._listeners.values())
        user = self.current_user
        for listener in listeners:
            listener(user)
