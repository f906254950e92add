import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from .. import schemas
from ..dependencies import get_gateway, get_identity, require_admin
from ..errors import InvalidInputError, NotFoundError
from ..gateway import QuizGateway
from ..leaderboard import Leaderboard

logger = logging.getLogger(__name__)

router = APIRouter()


def check_quiz_draft(quiz: schemas.QuizCreate):
    if not quiz.title.strip():
        raise InvalidInputError("Quiz title is required")
    if not quiz.questions:
        raise InvalidInputError("Add at least one question")


# --- ADMIN ---
@router.get("/quizzes", response_model=List[schemas.Quiz])
def read_quizzes(gateway: QuizGateway = Depends(get_gateway), admin=Depends(require_admin)):
    return gateway.list_quizzes()


@router.get("/quizzes/{quiz_id}", response_model=schemas.Quiz)
def read_quiz(quiz_id: str, gateway: QuizGateway = Depends(get_gateway), admin=Depends(require_admin)):
    quiz = gateway.get_quiz(quiz_id)
    if quiz is None:
        raise NotFoundError()
    return quiz


@router.post("/quizzes", response_model=schemas.Quiz)
def save_quiz(quiz: schemas.QuizCreate, gateway: QuizGateway = Depends(get_gateway), admin=Depends(require_admin)):
    check_quiz_draft(quiz)
    saved = gateway.save_quiz(quiz)
    logger.info("%s saved quiz %s (PIN %s)", admin.username, saved.id, saved.game_pin)
    return saved


@router.put("/quizzes/{quiz_id}", response_model=schemas.Quiz)
def update_quiz(
    quiz_id: str,
    quiz: schemas.QuizCreate,
    gateway: QuizGateway = Depends(get_gateway),
    admin=Depends(require_admin),
):
    check_quiz_draft(quiz)
    if gateway.get_quiz(quiz_id) is None:
        raise NotFoundError()
    quiz.id = quiz_id
    return gateway.save_quiz(quiz)


@router.delete("/quizzes/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quiz(quiz_id: str, gateway: QuizGateway = Depends(get_gateway), admin=Depends(require_admin)):
    gateway.delete_quiz(quiz_id)
    logger.info("%s deleted quiz %s", admin.username, quiz_id)


@router.get("/users", response_model=List[schemas.User])
def read_users(gateway: QuizGateway = Depends(get_gateway), admin=Depends(require_admin)):
    return gateway.list_users()


@router.get("/results", response_model=List[schemas.QuizResult])
def read_results(gateway: QuizGateway = Depends(get_gateway), admin=Depends(require_admin)):
    return gateway.list_results()


@router.get("/admin/dashboard", response_model=schemas.AdminDashboard)
def admin_dashboard(gateway: QuizGateway = Depends(get_gateway), admin=Depends(require_admin)):
    quizzes = gateway.list_quizzes()
    results = gateway.list_results()

    participants = {}
    for r in results:
        participants[r.quiz_id] = participants.get(r.quiz_id, 0) + 1

    return schemas.AdminDashboard(
        total_quizzes=len(quizzes),
        active_quizzes=sum(1 for q in quizzes if q.status == schemas.QuizStatus.ACTIVE),
        total_users=len(gateway.list_users()),
        total_results=len(results),
        quizzes=[schemas.QuizStats(quiz=q, participant_count=participants.get(q.id, 0)) for q in quizzes],
    )


# --- PARTICIPANT ---
@router.get("/me/quizzes", response_model=List[schemas.DashboardEntry])
def my_quizzes(gateway: QuizGateway = Depends(get_gateway), identity: schemas.Identity = Depends(get_identity)):
    mine = {r.quiz_id: r for r in gateway.list_results() if r.user_id == identity.id}
    return [
        schemas.DashboardEntry(
            quiz=schemas.QuizSummary.of(q),
            completed=q.id in mine,
            result=mine.get(q.id),
        )
        for q in gateway.list_quizzes()
        if q.is_joinable
    ]


# --- LEADERBOARD ---
@router.get("/leaderboard", response_model=schemas.LeaderboardPage)
def leaderboard(
    quiz_id: Optional[str] = Query(default=None, alias="quizId"),
    gateway: QuizGateway = Depends(get_gateway),
):
    return Leaderboard(gateway).select(quiz_id)
