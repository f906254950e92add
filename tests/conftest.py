import random
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizmaster import models  # noqa: F401
from quizmaster.config import Settings, get_settings
from quizmaster.database import Base, get_db
from quizmaster.gateway import QuizGateway
from quizmaster.schemas import Identity, Question, QuizCreate, QuizResult, QuizStatus


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def gateway(db):
    return QuizGateway(db, rng=random.Random(7))


@pytest.fixture
def settings():
    return Settings(
        SESSION_SECRET="test-secret",
        ADMIN_USERNAME="admin",
        ADMIN_PASSWORD="polkmn_",
        ADMIN_AUTH_SOURCE="stored",
        SEED_DEMO_DATA=False,
        TICK_INTERVAL=60.0,
    )


@pytest.fixture
def client(db, settings):
    from main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def build_quiz(time_limits=(15, 10), correct=(0, 2), status=QuizStatus.ACTIVE, pin=None, title="General Knowledge", **kw):
    questions = [
        Question(
            id=f"q{i + 1}",
            text=f"Question {i + 1}?",
            options=["A", "B", "C", "D"],
            correct_answer_index=answer,
            time_limit=limit,
        )
        for i, (limit, answer) in enumerate(zip(time_limits, correct))
    ]
    return QuizCreate(title=title, description="", questions=questions, status=status, game_pin=pin, **kw)


@pytest.fixture
def quiz_factory(gateway):
    def make(**kw):
        return gateway.save_quiz(build_quiz(**kw))
    return make


@pytest.fixture
def alice():
    return Identity(id="user-alice", username="alice", role="user")


def make_result(score, duration_ms, username="player", quiz_id="quiz-1", total=5, minutes_ago=0):
    return QuizResult(
        user_id=f"id-{username}",
        username=username,
        quiz_id=quiz_id,
        score=score,
        total_questions=total,
        completed_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
        duration_ms=duration_ms,
    )


class ManualTimer:
    """Countdown double: ticks only when the test fires it."""

    def __init__(self, on_tick):
        self.on_tick = on_tick
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self, times=1):
        for _ in range(times):
            if self.cancelled:
                return
            self.on_tick()


@pytest.fixture
def timers():
    created = []

    def factory(on_tick):
        timer = ManualTimer(on_tick)
        created.append(timer)
        return timer

    factory.created = created
    return factory


@pytest.fixture
def fake_clock():
    class Clock:
        now = 100.0

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def draft():
    return build_quiz


@pytest.fixture
def result_factory():
    return make_result
