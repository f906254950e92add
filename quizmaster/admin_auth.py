import hmac
import logging
from typing import Optional

from .config import Settings
from .gateway import QuizGateway
from .schemas import Identity, Role

logger = logging.getLogger(__name__)

ENV_ADMIN_ID = "admin-env"


class AdminAuthenticator:
    """Checks administrator credentials against the configured source.

    `stored`: a users row with role admin (password compared as stored).
    `env`: ADMIN_USERNAME / ADMIN_PASSWORD compared directly.
    """

    def __init__(self, settings: Settings, gateway: QuizGateway):
        self.settings = settings
        self.gateway = gateway

    def authenticate(self, username: str, password: str) -> Optional[Identity]:
        username = (username or "").strip()
        if not username or not password:
            return None

        if self.settings.ADMIN_AUTH_SOURCE == "env":
            same_user = hmac.compare_digest(username.lower(), self.settings.ADMIN_USERNAME.lower())
            same_password = hmac.compare_digest(password, self.settings.ADMIN_PASSWORD)
            if same_user and same_password:
                return Identity(id=ENV_ADMIN_ID, username=self.settings.ADMIN_USERNAME, role=Role.ADMIN)
            logger.warning("Rejected admin sign-in for %r", username)
            return None

        user = self.gateway.login(username, password)
        if user is None or user.role != Role.ADMIN or not user.password:
            logger.warning("Rejected admin sign-in for %r", username)
            return None
        return Identity.of(user)
