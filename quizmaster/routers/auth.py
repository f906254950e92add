import logging

from fastapi import APIRouter, Depends, Request, Response, status

from .. import schemas
from ..admin_auth import AdminAuthenticator
from ..config import Settings, get_settings
from ..dependencies import get_gateway, get_identity, get_session_store
from ..errors import InvalidInputError, PermissionDeniedError
from ..gateway import QuizGateway
from ..join_flow import JoinFlow
from ..session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()


# --- JOIN ---
@router.post("/join/pin", response_model=schemas.QuizSummary)
def join_with_pin(
    body: schemas.PinSubmission,
    response: Response,
    gateway: QuizGateway = Depends(get_gateway),
    store: SessionStore = Depends(get_session_store),
):
    quiz = JoinFlow(gateway).submit_pin(body.pin)
    store.set_pending_quiz_id(response, quiz.id)
    return schemas.QuizSummary.of(quiz)


@router.post("/join/username", response_model=schemas.JoinResponse)
def join_with_username(
    body: schemas.UsernameSubmission,
    request: Request,
    response: Response,
    gateway: QuizGateway = Depends(get_gateway),
    store: SessionStore = Depends(get_session_store),
):
    # Step one must have validated a quiz that is still joinable
    quiz_id = store.get_pending_quiz_id(request.cookies)
    quiz = gateway.get_quiz(quiz_id) if quiz_id else None
    if quiz is None or not quiz.is_joinable:
        raise InvalidInputError("Enter the Game PIN first")

    outcome = JoinFlow(gateway, validated_quiz=quiz).submit_username(body.username)
    store.set_current_identity(response, outcome.identity)
    store.set_pending_quiz_id(response, None)
    return schemas.JoinResponse(
        identity=outcome.identity,
        target_quiz_id=outcome.target_quiz.id if outcome.target_quiz else None,
        already_completed=outcome.already_completed,
    )


@router.delete("/join", status_code=status.HTTP_204_NO_CONTENT)
def cancel_join(store: SessionStore = Depends(get_session_store)):
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    store.set_pending_quiz_id(response, None)
    return response


# --- ADMIN LOGIN ---
@router.post("/admin/login", response_model=schemas.Identity)
def admin_login(
    body: schemas.AdminCredentials,
    response: Response,
    gateway: QuizGateway = Depends(get_gateway),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    identity = AdminAuthenticator(settings, gateway).authenticate(body.username, body.password)
    if identity is None:
        raise PermissionDeniedError()
    store.set_current_identity(response, identity)
    logger.info("Admin %s signed in", identity.username)
    return identity


# --- LOGOUT ---
@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(store: SessionStore = Depends(get_session_store)):
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    store.set_current_identity(response, None)
    store.set_pending_quiz_id(response, None)
    return response


@router.get("/me", response_model=schemas.Identity)
def who_am_i(identity: schemas.Identity = Depends(get_identity)):
    return identity
