from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .database import get_db
from .errors import AuthenticationError, PermissionDeniedError
from .gateway import QuizGateway
from .schemas import Identity
from .session_store import SessionStore


def get_gateway(db: Session = Depends(get_db)) -> QuizGateway:
    return QuizGateway(db)


def get_session_store(settings: Settings = Depends(get_settings)) -> SessionStore:
    return SessionStore(settings.SESSION_SECRET)


def get_identity(request: Request, store: SessionStore = Depends(get_session_store)) -> Identity:
    identity = store.get_current_identity(request.cookies)
    if identity is None:
        raise AuthenticationError()
    return identity


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise PermissionDeniedError()
    return identity
