import pytest

from quizmaster.errors import InvalidInputError, InvalidPinError, UsernameTakenError
from quizmaster.join_flow import JoinFlow, JoinState
from quizmaster.schemas import QuizStatus


class _OfflineGateway:
    """Fails the test if the flow makes any round trip."""

    def __getattr__(self, name):
        raise AssertionError(f"unexpected gateway call: {name}")


@pytest.fixture
def active_quiz(quiz_factory):
    return quiz_factory(pin="123456", status=QuizStatus.ACTIVE)


@pytest.mark.parametrize("pin", ["", "   ", "12345", "12345a", "1234567"])
def test_malformed_pin_is_rejected_locally(pin):
    flow = JoinFlow(_OfflineGateway())
    with pytest.raises(InvalidInputError):
        flow.submit_pin(pin)
    assert flow.state == JoinState.AWAITING_PIN


def test_unknown_pin_stays_awaiting_pin(gateway, active_quiz):
    flow = JoinFlow(gateway)
    with pytest.raises(InvalidPinError) as info:
        flow.submit_pin("999999")
    assert "Invalid Game PIN" in info.value.message
    assert flow.state == JoinState.AWAITING_PIN
    assert flow.quiz is None


@pytest.mark.parametrize("status", [QuizStatus.DRAFT, QuizStatus.COMPLETED])
def test_pin_of_unplayable_quiz_is_invalid(gateway, quiz_factory, status):
    quiz_factory(pin="222222", status=status)
    with pytest.raises(InvalidPinError):
        JoinFlow(gateway).submit_pin("222222")


def test_scheduled_quiz_is_joinable(gateway, quiz_factory):
    quiz = quiz_factory(pin="333333", status=QuizStatus.SCHEDULED)
    assert JoinFlow(gateway).submit_pin(" 333333 ").id == quiz.id


def test_valid_pin_moves_to_username(gateway, active_quiz):
    flow = JoinFlow(gateway)
    quiz = flow.submit_pin("123456")

    assert quiz.id == active_quiz.id
    assert flow.state == JoinState.AWAITING_USERNAME
    assert flow.quiz == active_quiz


def test_blank_username_is_rejected_locally(active_quiz):
    flow = JoinFlow(_OfflineGateway(), validated_quiz=active_quiz)
    with pytest.raises(InvalidInputError):
        flow.submit_username("   ")
    assert flow.state == JoinState.AWAITING_USERNAME


def test_new_username_registers_once_and_plays(gateway, active_quiz):
    flow = JoinFlow(gateway)
    flow.submit_pin("123456")
    outcome = flow.submit_username("  alice ")

    assert flow.state == JoinState.JOINED
    assert outcome.identity.username == "alice"
    assert outcome.identity.role == "user"
    assert outcome.target_quiz.id == active_quiz.id
    assert not outcome.already_completed
    assert [u.username for u in gateway.list_users()] == ["alice"]


def test_returning_user_without_result_plays(gateway, active_quiz):
    existing = gateway.register_user("Alice")
    outcome = JoinFlow(gateway, validated_quiz=active_quiz).submit_username("alice")

    assert outcome.identity.id == existing.id
    assert outcome.target_quiz.id == active_quiz.id
    assert len(gateway.list_users()) == 1


def test_returning_user_who_finished_goes_to_dashboard(gateway, active_quiz, result_factory):
    user = gateway.register_user("alice")
    result = result_factory(1, 500, username="alice", quiz_id=active_quiz.id, total=2)
    gateway.submit_result(result.model_copy(update={"user_id": user.id}))

    outcome = JoinFlow(gateway, validated_quiz=active_quiz).submit_username("ALICE")

    assert outcome.target_quiz is None
    assert outcome.already_completed
    assert outcome.identity.id == user.id


def test_name_claimed_concurrently_is_a_conflict(gateway, active_quiz, monkeypatch):
    gateway.register_user("alice")
    # Our lookup ran before the other registration landed
    monkeypatch.setattr(gateway, "find_user_by_username", lambda name: None)

    flow = JoinFlow(gateway, validated_quiz=active_quiz)
    with pytest.raises(UsernameTakenError) as info:
        flow.submit_username("alice")

    assert info.value.message == "That username is already taken"
    assert flow.state == JoinState.AWAITING_USERNAME
    assert len(gateway.list_users()) == 1


def test_password_protected_account_cannot_be_claimed(gateway, active_quiz):
    gateway.register_user("admin", "polkmn_", role="admin")
    with pytest.raises(UsernameTakenError):
        JoinFlow(gateway, validated_quiz=active_quiz).submit_username("Admin")


def test_cancel_discards_validated_quiz(gateway, active_quiz):
    flow = JoinFlow(gateway)
    flow.submit_pin("123456")
    flow.cancel()

    assert flow.state == JoinState.AWAITING_PIN
    assert flow.quiz is None
    with pytest.raises(InvalidInputError):
        flow.submit_username("alice")


def test_operations_out_of_order_are_rejected(gateway, active_quiz):
    flow = JoinFlow(gateway)
    with pytest.raises(InvalidInputError):
        flow.cancel()

    flow.submit_pin("123456")
    with pytest.raises(InvalidInputError):
        flow.submit_pin("123456")
