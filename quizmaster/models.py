import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String, UniqueConstraint, func

from .database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True, default=_new_id)
    game_pin = Column(String(6), unique=True, index=True, nullable=False)
    title = Column(String, index=True, nullable=False)
    description = Column(String, default="")
    questions = Column(JSON, default=list)  # ordered list of question dicts
    scheduled_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    status = Column(String(16), default="draft", index=True)  # draft, scheduled, active, completed


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String, nullable=False)
    password = Column(String, nullable=True)  # plain, no auth hardening
    role = Column(String(16), default="user")  # 'user', 'admin'
    created_at = Column(DateTime(timezone=True), default=_utcnow)


# Case-insensitive uniqueness is enforced by the store itself
Index("ix_users_username_lower", func.lower(User.username), unique=True)


class QuizResult(Base):
    __tablename__ = "results"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), index=True, nullable=False)
    username = Column(String, nullable=False)  # denormalized for leaderboard display
    quiz_id = Column(String(36), index=True, nullable=False)
    score = Column(Integer, default=0)
    total_questions = Column(Integer, default=0)
    completed_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    duration_ms = Column(Integer, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "quiz_id", name="uq_results_user_quiz"),
    )
