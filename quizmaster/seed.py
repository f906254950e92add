import logging
from datetime import datetime, timedelta, timezone

from .config import Settings
from .gateway import QuizGateway
from .schemas import Question, QuizCreate, QuizStatus, Role

logger = logging.getLogger(__name__)


def demo_quizzes():
    now = datetime.now(timezone.utc)
    return [
        QuizCreate(
            game_pin="123456",
            title="Modern Web Development",
            description="Test your knowledge on React, Tailwind, and TypeScript.",
            scheduled_at=now,
            status=QuizStatus.ACTIVE,
            questions=[
                Question(
                    id="q1",
                    text="What does JSX stand for?",
                    options=["JavaScript XML", "Java Syntax Extension", "JSON XML", "JavaScript X-platform"],
                    correct_answer_index=0,
                    time_limit=15,
                ),
                Question(
                    id="q2",
                    text="Which hook is used for side effects in React?",
                    options=["useState", "useContext", "useEffect", "useMemo"],
                    correct_answer_index=2,
                    time_limit=10,
                ),
            ],
        ),
        QuizCreate(
            game_pin="654321",
            title="System Design Basics",
            description="Core concepts of scalable systems.",
            scheduled_at=now + timedelta(days=1),
            status=QuizStatus.SCHEDULED,
            questions=[
                Question(
                    id="q3",
                    text="What does CAP theorem stand for?",
                    options=[
                        "Consistency, Availability, Partition Tolerance",
                        "Concurrency, Availability, Performance",
                        "Cache, API, Proxy",
                        "Control, Access, Privacy",
                    ],
                    correct_answer_index=0,
                    time_limit=20,
                ),
            ],
        ),
    ]


def seed_demo_quizzes(gateway: QuizGateway) -> int:
    if gateway.list_quizzes():
        return 0
    quizzes = demo_quizzes()
    for quiz in quizzes:
        gateway.save_quiz(quiz)
    logger.info("Seeded %d demo quizzes", len(quizzes))
    return len(quizzes)


def ensure_admin(gateway: QuizGateway, settings: Settings):
    if settings.ADMIN_AUTH_SOURCE != "stored":
        return None
    existing = gateway.find_user_by_username(settings.ADMIN_USERNAME)
    if existing is not None:
        if existing.role != Role.ADMIN:
            logger.warning("User %r exists but is not an admin", settings.ADMIN_USERNAME)
        return existing
    admin = gateway.register_user(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD, role=Role.ADMIN)
    logger.info("Provisioned admin user %r", settings.ADMIN_USERNAME)
    return admin
