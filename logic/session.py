"""
Operator session lifecycle.

``anonymous -> authenticating -> authenticated(token)``; logging out returns
to ``anonymous``. When the login endpoint itself cannot be reached, the fixed
demonstration credentials still open a local-only session. A definite
rejection from the backend is never overridden.

Date: 2026-10-18
"""

import logging
from enum import Enum
from typing import Optional

from .config import DEMO_TOKEN, get_settings
from .errors import GatewayError, GatewayRejected

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class SessionMachine:
    """Session state for the administrative surface.

    Args:
        gateway: Remote gateway exposing ``async login(email, password)``.
        demo_email: Demonstration email; defaults to the configured one.
        demo_password: Demonstration password; defaults to the configured one.
    """

    def __init__(self, gateway, demo_email: Optional[str] = None, demo_password: Optional[str] = None):
        settings = get_settings()
        self._gateway = gateway
        self._demo_email = demo_email if demo_email is not None else settings.demo_email
        self._demo_password = demo_password if demo_password is not None else settings.demo_password
        self.status = SessionStatus.ANONYMOUS
        self.token: Optional[str] = None
        self.error: Optional[str] = None
        self.demo = False
        # Bumped by every login attempt and logout
        self.generation = 0

    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED and bool(self.token)

    def _is_demo_pair(self, email: str, password: str) -> bool:
        return (email or "").strip().lower() == self._demo_email.lower() and password == self._demo_password

    async def login(self, email: str, password: str) -> bool:
        """Authenticate against the gateway.

        Args:
            email: Operator email.
            password: Operator password.

        Returns:
            True if the session ended up authenticated.
        """
        if self.status == SessionStatus.AUTHENTICATING:
            self.error = "A login is already in progress"
            return False
        if self.is_authenticated:
            return True

        self.generation += 1
        attempt = self.generation
        self.status = SessionStatus.AUTHENTICATING
        self.error = None
        try:
            token = await self._gateway.login(email, password)
            error = None
        except GatewayError as e:
            token, error = None, e

        if attempt != self.generation:
            logger.info("Login for %s finished after logout; result dropped", email)
            return False

        if isinstance(error, GatewayRejected):
            logger.info("Login rejected for %s (%s)", email, error)
            return self._fail("Invalid email or password")
        if error is not None:
            if self._is_demo_pair(email, password):
                logger.warning("Login endpoint unavailable (%s); opening demo session", error)
                self.demo = True
                return self._enter(DEMO_TOKEN)
            logger.warning("Login endpoint unavailable: %s", error)
            return self._fail("Could not reach the server to log in")

        self.demo = False
        return self._enter(token)

    def _enter(self, token: str) -> bool:
        self.status = SessionStatus.AUTHENTICATED
        self.token = token
        self.error = None
        return True

    def _fail(self, message: str) -> bool:
        self.status = SessionStatus.ANONYMOUS
        self.token = None
        self.error = message
        return False

    def logout(self) -> None:
        """Return to ``anonymous``; a login still in flight is abandoned."""
        self.generation += 1
        self.status = SessionStatus.ANONYMOUS
        self.token = None
        self.error = None
        self.demo = False

    def to_dict(self):
        return {
            "status": self.status.value,
            "authenticated": self.is_authenticated,
            "demo": self.demo,
            "error": self.error,
        }
