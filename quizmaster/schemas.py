from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class QuizStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"


JOINABLE_STATUSES = (QuizStatus.ACTIVE, QuizStatus.SCHEDULED)


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire; either spelling accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Question(CamelModel):
    id: str
    text: str
    options: List[str] = Field(min_length=2)
    correct_answer_index: int
    time_limit: int = Field(default=30, gt=0)  # seconds

    @model_validator(mode="after")
    def check_answer_index(self):
        if not 0 <= self.correct_answer_index < len(self.options):
            raise ValueError("correct_answer_index must point into options")
        return self


class QuizBase(CamelModel):
    title: str
    description: str = ""
    questions: List[Question] = []
    scheduled_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: QuizStatus = QuizStatus.DRAFT


class QuizCreate(QuizBase):
    id: Optional[str] = None
    game_pin: Optional[str] = Field(default=None, pattern=r"^\d{6}$")


class Quiz(QuizBase):
    id: str
    game_pin: str

    @property
    def is_joinable(self) -> bool:
        return self.status in JOINABLE_STATUSES


class QuizSummary(CamelModel):
    """Participant-facing view of a quiz; never carries the answers."""

    id: str
    title: str
    description: str
    scheduled_at: datetime
    status: QuizStatus
    question_count: int

    @classmethod
    def of(cls, quiz: Quiz) -> "QuizSummary":
        return cls(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            scheduled_at=quiz.scheduled_at,
            status=quiz.status,
            question_count=len(quiz.questions),
        )


class User(CamelModel):
    id: str
    username: str
    password: Optional[str] = Field(default=None, exclude=True)
    role: Role = Role.USER
    created_at: datetime


class Identity(CamelModel):
    id: str
    username: str
    role: Role

    @classmethod
    def of(cls, user: User) -> "Identity":
        return cls(id=user.id, username=user.username, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class QuizResult(CamelModel):
    user_id: str
    username: str
    quiz_id: str
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)
    completed_at: datetime
    duration_ms: int = Field(ge=0)

    @model_validator(mode="after")
    def check_score(self):
        if self.score > self.total_questions:
            raise ValueError("score cannot exceed total_questions")
        return self


# Requests

class PinSubmission(CamelModel):
    pin: str


class UsernameSubmission(CamelModel):
    username: str


class AdminCredentials(CamelModel):
    username: str
    password: str


# Responses

class JoinResponse(CamelModel):
    identity: Identity
    target_quiz_id: Optional[str] = None
    already_completed: bool = False


class DashboardEntry(CamelModel):
    quiz: QuizSummary
    completed: bool
    result: Optional[QuizResult] = None


class QuizStats(CamelModel):
    quiz: Quiz
    participant_count: int


class AdminDashboard(CamelModel):
    total_quizzes: int
    active_quizzes: int
    total_users: int
    total_results: int
    quizzes: List[QuizStats]


class RankedResult(CamelModel):
    rank: int
    username: str
    user_id: str
    score: int
    total_questions: int
    duration_ms: int
    completed_at: datetime


class LeaderboardBoard(CamelModel):
    quiz_id: Optional[str] = None
    podium: List[RankedResult] = []
    others: List[RankedResult] = []
    is_empty: bool = True


class LeaderboardPage(CamelModel):
    quizzes: List[QuizSummary]
    selected_quiz_id: Optional[str] = None
    board: LeaderboardBoard
