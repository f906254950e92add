import asyncio
import functools
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..config import Settings, get_settings
from ..dependencies import get_gateway, get_session_store
from ..errors import QuizMasterError
from ..gateway import QuizGateway
from ..quiz_engine import Countdown, QuizSession, log_task_failure, prepare_session, session_registry
from ..session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()


async def _pump(websocket: WebSocket, outbox: asyncio.Queue):
    while True:
        message = await outbox.get()
        await websocket.send_json(message)


async def _redirect(websocket: WebSocket, to: str):
    await websocket.send_json({"type": "REDIRECT", "to": to})
    await websocket.close()


@router.websocket("/ws/play/{quiz_id}")
async def play_quiz(
    websocket: WebSocket,
    quiz_id: str,
    gateway: QuizGateway = Depends(get_gateway),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    await websocket.accept()

    identity = store.get_current_identity(websocket.cookies)
    if identity is None:
        await _redirect(websocket, "/")
        return

    # Re-entry guard runs before any timer exists
    quiz = prepare_session(gateway, identity, quiz_id)
    if quiz is None:
        await _redirect(websocket, "/user")
        return

    outbox: asyncio.Queue = asyncio.Queue()
    session = QuizSession(
        quiz,
        identity,
        submit_result=gateway.submit_result,
        timer_factory=functools.partial(Countdown, interval=settings.TICK_INTERVAL),
        listener=outbox.put_nowait,
    )
    if not session_registry.open(session):
        logger.warning("%s already has quiz %s open", identity.username, quiz.id)
        await _redirect(websocket, "/user")
        return

    sender = asyncio.create_task(_pump(websocket, outbox))
    sender.add_done_callback(log_task_failure)
    try:
        session.start()
        while True:
            data = await websocket.receive_text()
            try:
                cmd = json.loads(data)
            except ValueError:
                outbox.put_nowait({"type": "ERROR", "message": "Malformed command"})
                continue
            if not isinstance(cmd, dict):
                continue
            try:
                if cmd.get("type") == "SUBMIT_ANSWER":
                    session.select(cmd.get("answer"))
                elif cmd.get("type") == "SKIP_QUESTION":
                    session.skip()
            except QuizMasterError as exc:
                outbox.put_nowait({"type": "ERROR", "message": exc.message})

    except WebSocketDisconnect:
        logger.info("WS PLAY: %s left quiz %s", identity.username, quiz.id)
    finally:
        session_registry.release(session)
        sender.cancel()
