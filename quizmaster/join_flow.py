import logging
import re
from enum import Enum
from typing import NamedTuple, Optional

from .errors import InvalidInputError, InvalidPinError, UsernameTakenError
from .gateway import QuizGateway
from .schemas import Identity, Quiz

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"^\d{6}$")


class JoinState(str, Enum):
    AWAITING_PIN = "awaiting_pin"
    AWAITING_USERNAME = "awaiting_username"
    JOINED = "joined"


class JoinOutcome(NamedTuple):
    identity: Identity
    target_quiz: Optional[Quiz]  # None when the quiz was already completed
    already_completed: bool


class JoinFlow:
    """Two-step join: a Game PIN first, then a username."""

    def __init__(self, gateway: QuizGateway, validated_quiz: Optional[Quiz] = None):
        self.gateway = gateway
        self.quiz = validated_quiz
        self.state = JoinState.AWAITING_USERNAME if validated_quiz else JoinState.AWAITING_PIN
        self.outcome: Optional[JoinOutcome] = None

    def _expect(self, state: JoinState):
        if self.state != state:
            raise InvalidInputError(f"Cannot do that while {self.state.value}")

    def submit_pin(self, pin: str) -> Quiz:
        self._expect(JoinState.AWAITING_PIN)

        pin = (pin or "").strip()
        if not pin:
            raise InvalidInputError("Game PIN is required")
        if not PIN_PATTERN.match(pin):
            raise InvalidInputError("Enter the 6-digit Game PIN")

        quiz = self.gateway.find_quiz_by_pin(pin)
        if quiz is None or not quiz.is_joinable:
            raise InvalidPinError()

        self.quiz = quiz
        self.state = JoinState.AWAITING_USERNAME
        return quiz

    def submit_username(self, username: str) -> JoinOutcome:
        self._expect(JoinState.AWAITING_USERNAME)

        username = (username or "").strip()
        if not username:
            raise InvalidInputError("Username is required")

        user = self.gateway.find_user_by_username(username)
        if user is not None:
            if user.password:
                # Password-protected accounts (admins) cannot be claimed by name alone
                raise UsernameTakenError()
            if self.gateway.find_result(user.id, self.quiz.id) is not None:
                logger.info("%s already completed quiz %s", user.username, self.quiz.id)
                return self._join(Identity.of(user), None)
            return self._join(Identity.of(user), self.quiz)

        user = self.gateway.register_user(username)
        if user is None:
            raise UsernameTakenError()
        logger.info("Registered participant %s", user.username)
        return self._join(Identity.of(user), self.quiz)

    def cancel(self) -> None:
        self._expect(JoinState.AWAITING_USERNAME)
        self.quiz = None
        self.state = JoinState.AWAITING_PIN

    def _join(self, identity: Identity, target: Optional[Quiz]) -> JoinOutcome:
        self.state = JoinState.JOINED
        self.outcome = JoinOutcome(identity=identity, target_quiz=target, already_completed=target is None)
        return self.outcome
