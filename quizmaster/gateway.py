import logging
import random
import uuid
from contextlib import contextmanager
from typing import List, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import ConflictError, GatewayError, NotFoundError, ResultAlreadySubmittedError

logger = logging.getLogger(__name__)

PIN_MIN = 100000
PIN_MAX = 999999
LEADERBOARD_LIMIT = 15


# --- Row <-> entity mapping ---
# The only place store column names meet the canonical entities.

def quiz_from_row(row: models.Quiz) -> schemas.Quiz:
    return schemas.Quiz(
        id=row.id,
        game_pin=row.game_pin,
        title=row.title,
        description=row.description or "",
        questions=[schemas.Question.model_validate(q) for q in (row.questions or [])],
        scheduled_at=row.scheduled_at,
        status=row.status,
    )


def user_from_row(row: models.User) -> schemas.User:
    return schemas.User(
        id=row.id,
        username=row.username,
        password=row.password,
        role=row.role,
        created_at=row.created_at,
    )


def result_from_row(row: models.QuizResult) -> schemas.QuizResult:
    return schemas.QuizResult(
        user_id=row.user_id,
        username=row.username,
        quiz_id=row.quiz_id,
        score=row.score,
        total_questions=row.total_questions,
        completed_at=row.completed_at,
        duration_ms=row.duration_ms,
    )


def _apply_quiz(row: models.Quiz, quiz, pin: str):
    row.game_pin = pin
    row.title = quiz.title
    row.description = quiz.description
    row.questions = [q.model_dump(mode="json") for q in quiz.questions]
    row.scheduled_at = quiz.scheduled_at
    row.status = schemas.QuizStatus(quiz.status).value


class QuizGateway:
    """Typed CRUD facade over the quizzes, users and results tables."""

    def __init__(self, db: Session, rng: random.Random = None):
        self.db = db
        self.rng = rng or random.Random()

    @contextmanager
    def _round_trip(self, operation: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("%s failed: %s", operation, exc)
            raise GatewayError() from exc

    # --- Quizzes ---

    def list_quizzes(self) -> List[schemas.Quiz]:
        with self._round_trip("list_quizzes"):
            rows = self.db.query(models.Quiz).order_by(models.Quiz.scheduled_at.desc()).all()
        return [quiz_from_row(r) for r in rows]

    def get_quiz(self, quiz_id: str) -> Optional[schemas.Quiz]:
        with self._round_trip("get_quiz"):
            row = self.db.get(models.Quiz, quiz_id)
        return quiz_from_row(row) if row else None

    def find_quiz_by_pin(self, pin: str) -> Optional[schemas.Quiz]:
        with self._round_trip("find_quiz_by_pin"):
            row = self.db.query(models.Quiz).filter(models.Quiz.game_pin == pin).first()
        return quiz_from_row(row) if row else None

    def save_quiz(self, quiz: Union[schemas.QuizCreate, schemas.Quiz]) -> schemas.Quiz:
        """Update when `quiz.id` is already persisted, insert otherwise."""
        with self._round_trip("save_quiz"):
            row = self.db.get(models.Quiz, quiz.id) if quiz.id else None

            pin = quiz.game_pin or (row.game_pin if row else None)
            if pin:
                holder = self.db.query(models.Quiz.id).filter(models.Quiz.game_pin == pin).first()
                if holder is not None and (row is None or holder.id != row.id):
                    raise ConflictError("That Game PIN is already in use")
            else:
                pin = self.generate_unique_pin()

            if row is None:
                row = models.Quiz(id=quiz.id or str(uuid.uuid4()))
                self.db.add(row)
            _apply_quiz(row, quiz, pin)
            try:
                self.db.commit()
            except IntegrityError as exc:
                # Another writer took the PIN after the holder check
                self.db.rollback()
                raise ConflictError("That Game PIN is already in use") from exc
            self.db.refresh(row)
        return quiz_from_row(row)

    def delete_quiz(self, quiz_id: str) -> None:
        with self._round_trip("delete_quiz"):
            row = self.db.get(models.Quiz, quiz_id)
            if row is None:
                raise NotFoundError()
            self.db.delete(row)
            self.db.commit()

    def generate_unique_pin(self) -> str:
        # Rejection sampling; a collision is ~1 in 900000 per draw
        while True:
            pin = str(self.rng.randint(PIN_MIN, PIN_MAX))
            with self._round_trip("generate_unique_pin"):
                taken = self.db.query(models.Quiz.id).filter(models.Quiz.game_pin == pin).first()
            if taken is None:
                return pin
            logger.debug("PIN %s already taken, drawing again", pin)

    # --- Users ---

    def list_users(self) -> List[schemas.User]:
        with self._round_trip("list_users"):
            rows = self.db.query(models.User).order_by(models.User.created_at).all()
        return [user_from_row(r) for r in rows]

    def find_user_by_username(self, username: str) -> Optional[schemas.User]:
        with self._round_trip("find_user_by_username"):
            row = (
                self.db.query(models.User)
                .filter(func.lower(models.User.username) == username.strip().lower())
                .first()
            )
        return user_from_row(row) if row else None

    def register_user(
        self, username: str, password: Optional[str] = None, role: schemas.Role = schemas.Role.USER
    ) -> Optional[schemas.User]:
        """Create a user; None when the username is already taken."""
        username = username.strip()
        if self.find_user_by_username(username) is not None:
            return None

        row = models.User(username=username, password=password, role=schemas.Role(role).value)
        with self._round_trip("register_user"):
            try:
                self.db.add(row)
                self.db.commit()
            except IntegrityError:
                # Another session claimed the name between the check and the insert
                self.db.rollback()
                logger.info("Username %r was claimed concurrently", username)
                return None
            self.db.refresh(row)
        return user_from_row(row)

    def login(self, username: str, password: Optional[str] = None) -> Optional[schemas.User]:
        user = self.find_user_by_username(username)
        if user is None:
            return None
        if user.password and user.password != password:
            return None
        return user

    # --- Results ---

    def list_results(self) -> List[schemas.QuizResult]:
        with self._round_trip("list_results"):
            rows = self.db.query(models.QuizResult).order_by(models.QuizResult.completed_at.desc()).all()
        return [result_from_row(r) for r in rows]

    def find_result(self, user_id: str, quiz_id: str) -> Optional[schemas.QuizResult]:
        with self._round_trip("find_result"):
            row = (
                self.db.query(models.QuizResult)
                .filter(models.QuizResult.user_id == user_id, models.QuizResult.quiz_id == quiz_id)
                .first()
            )
        return result_from_row(row) if row else None

    def submit_result(self, result: schemas.QuizResult) -> None:
        row = models.QuizResult(
            user_id=result.user_id,
            username=result.username,
            quiz_id=result.quiz_id,
            score=result.score,
            total_questions=result.total_questions,
            completed_at=result.completed_at,
            duration_ms=result.duration_ms,
        )
        with self._round_trip("submit_result"):
            try:
                self.db.add(row)
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ResultAlreadySubmittedError() from exc

    def get_leaderboard(self, quiz_id: str) -> List[schemas.QuizResult]:
        with self._round_trip("get_leaderboard"):
            rows = (
                self.db.query(models.QuizResult)
                .filter(models.QuizResult.quiz_id == quiz_id)
                .order_by(models.QuizResult.score.desc(), models.QuizResult.duration_ms.asc())
                .limit(LEADERBOARD_LIMIT)
                .all()
            )
        return [result_from_row(r) for r in rows]
