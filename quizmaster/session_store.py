import logging
from typing import Mapping, Optional

from itsdangerous import BadSignature, URLSafeSerializer
from pydantic import ValidationError
from starlette.responses import Response

from .schemas import Identity

logger = logging.getLogger(__name__)

AUTH_COOKIE = "quizmaster_auth"
JOIN_COOKIE = "quizmaster_join"


class SessionStore:
    """Keeps the signed-in identity (and a half-finished join) in signed cookies.

    Nothing here touches the database: an absent, tampered or malformed
    cookie simply reads as "nobody is signed in".
    """

    def __init__(self, secret_key: str):
        self._serializer = URLSafeSerializer(secret_key, salt="quizmaster-session")

    def _load(self, cookies: Mapping[str, str], name: str):
        raw = cookies.get(name)
        if not raw:
            return None
        try:
            return self._serializer.loads(raw)
        except BadSignature:
            logger.warning("Ignoring cookie %s with a bad signature", name)
            return None

    # --- Identity ---

    def get_current_identity(self, cookies: Mapping[str, str]) -> Optional[Identity]:
        data = self._load(cookies, AUTH_COOKIE)
        if data is None:
            return None
        try:
            return Identity.model_validate(data)
        except ValidationError:
            logger.warning("Ignoring malformed identity cookie")
            return None

    def set_current_identity(self, response: Response, identity: Optional[Identity]) -> None:
        if identity is None:
            response.delete_cookie(AUTH_COOKIE)
            return
        token = self._serializer.dumps(identity.model_dump(mode="json"))
        response.set_cookie(key=AUTH_COOKIE, value=token, httponly=True, samesite="lax")

    # --- Join in progress ---

    def get_pending_quiz_id(self, cookies: Mapping[str, str]) -> Optional[str]:
        data = self._load(cookies, JOIN_COOKIE)
        return data if isinstance(data, str) else None

    def set_pending_quiz_id(self, response: Response, quiz_id: Optional[str]) -> None:
        if quiz_id is None:
            response.delete_cookie(JOIN_COOKIE)
            return
        response.set_cookie(key=JOIN_COOKIE, value=self._serializer.dumps(quiz_id), httponly=True, samesite="lax")
