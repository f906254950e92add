import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from .errors import InvalidInputError, QuizMasterError
from .gateway import QuizGateway
from .schemas import Identity, Question, Quiz, QuizResult

logger = logging.getLogger(__name__)

UNANSWERED = -1


def score_answers(questions: List[Question], answers: List[int]) -> int:
    return sum(1 for q, a in zip(questions, answers) if a == q.correct_answer_index)


def log_task_failure(task: asyncio.Task):
    """Done callback: report a background task that died with an exception."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background task %s failed", task.get_name(), exc_info=exc)


class Countdown:
    """Repeating tick on the running event loop until cancelled."""

    def __init__(self, on_tick: Callable[[], None], interval: float = 1.0):
        self.on_tick = on_tick
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(log_task_failure)

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            self.on_tick()

    def cancel(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None


class QuizSession:
    """One participant going through one quiz, question by question.

    Each question runs under its own countdown; the countdown is cancelled
    whenever the question changes, the quiz finishes or `close()` is called.
    On finishing, exactly one QuizResult is handed to `submit_result`.
    """

    def __init__(
        self,
        quiz: Quiz,
        identity: Identity,
        submit_result: Callable[[QuizResult], None],
        timer_factory: Callable[[Callable[[], None]], Countdown] = Countdown,
        clock: Callable[[], float] = time.monotonic,
        listener: Callable[[dict], None] = None,
    ):
        self.quiz = quiz
        self.identity = identity
        self.questions = list(quiz.questions)
        self._submit_result = submit_result
        self._timer_factory = timer_factory
        self._clock = clock
        self._listener = listener

        self.current_index = 0
        self.answers = [UNANSWERED] * len(self.questions)
        self.time_left = 0
        self.finished = False
        self.closed = False
        self.score: Optional[int] = None
        self.result: Optional[QuizResult] = None
        self.submit_error: Optional[Exception] = None

        self._started_at: Optional[float] = None
        self._timer: Optional[Countdown] = None

    @property
    def current_question(self) -> Optional[Question]:
        if self.finished or not self.questions:
            return None
        return self.questions[self.current_index]

    def start(self):
        if self._started_at is not None:
            return
        self._started_at = self._clock()
        logger.info("%s started quiz %s", self.identity.username, self.quiz.id)
        if not self.questions:
            self._finish()
            return
        self._begin_question(0)

    def tick(self):
        if self.finished or self.closed:
            return
        self.time_left -= 1
        self._emit({"type": "TICK", "timeLeft": max(self.time_left, 0)})
        if self.time_left <= 0:
            self.advance()

    def select(self, option: int):
        if self.finished or self.closed:
            return
        question = self.questions[self.current_index]
        if not isinstance(option, int) or isinstance(option, bool) or not 0 <= option < len(question.options):
            raise InvalidInputError("Pick one of the listed options")
        self.advance(option)

    def skip(self):
        self.advance()

    def advance(self, option: Optional[int] = None):
        if self.finished or self.closed:
            return
        self._cancel_timer()
        if option is not None:
            self.answers[self.current_index] = option

        if self.current_index < len(self.questions) - 1:
            self._begin_question(self.current_index + 1)
        else:
            self._finish()

    def close(self):
        """Tear down; later ticks, answers and submissions are ignored."""
        self._cancel_timer()
        self.closed = True

    def _begin_question(self, index: int):
        self._cancel_timer()
        self.current_index = index
        question = self.questions[index]
        self.time_left = question.time_limit
        self._emit({
            "type": "NEW_QUESTION",
            "index": index,
            "total": len(self.questions),
            "text": question.text,
            "options": list(question.options),
            "timeLimit": question.time_limit,
        })
        self._timer = self._timer_factory(self.tick)
        self._timer.start()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _finish(self):
        self._cancel_timer()
        self.finished = True
        self.score = score_answers(self.questions, self.answers)
        duration_ms = int((self._clock() - self._started_at) * 1000)

        self.result = QuizResult(
            user_id=self.identity.id,
            username=self.identity.username,
            quiz_id=self.quiz.id,
            score=self.score,
            total_questions=len(self.questions),
            completed_at=datetime.now(timezone.utc),
            duration_ms=max(duration_ms, 0),
        )
        try:
            self._submit_result(self.result)
        except QuizMasterError as exc:
            # The participant still sees their score
            self.submit_error = exc
            logger.exception("Submitting result of %s for quiz %s failed", self.identity.username, self.quiz.id)
        else:
            logger.info(
                "%s finished quiz %s with %s/%s",
                self.identity.username, self.quiz.id, self.score, len(self.questions),
            )

        self._emit({
            "type": "QUIZ_FINISHED",
            "score": self.score,
            "total": len(self.questions),
            "durationMs": self.result.duration_ms,
            "submitted": self.submit_error is None,
        })

    def _emit(self, event: dict):
        if self._listener is not None and not self.closed:
            self._listener(event)


def prepare_session(gateway: QuizGateway, identity: Identity, quiz_id: str) -> Optional[Quiz]:
    """Re-entry guard: the quiz to play, or None when the player must be sent away."""
    quiz = gateway.get_quiz(quiz_id)
    if quiz is None or not quiz.is_joinable:
        return None
    if gateway.find_result(identity.id, quiz.id) is not None:
        logger.warning("%s attempted to re-take quiz %s", identity.username, quiz.id)
        return None
    return quiz


class SessionRegistry:
    """Live sessions on this process, one per (user, quiz)."""

    def __init__(self):
        self.active_sessions: Dict[Tuple[str, str], QuizSession] = {}

    def open(self, session: QuizSession) -> bool:
        key = (session.identity.id, session.quiz.id)
        current = self.active_sessions.get(key)
        if current is not None and not current.closed:
            return False
        self.active_sessions[key] = session
        return True

    def release(self, session: QuizSession):
        session.close()
        key = (session.identity.id, session.quiz.id)
        if self.active_sessions.get(key) is session:
            del self.active_sessions[key]


session_registry = SessionRegistry()
