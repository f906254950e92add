from typing import Iterable, List, Optional

from .gateway import LEADERBOARD_LIMIT, QuizGateway
from .schemas import LeaderboardBoard, LeaderboardPage, QuizResult, QuizSummary, RankedResult

PODIUM_SIZE = 3


def rank_results(results: Iterable[QuizResult]) -> List[QuizResult]:
    # Higher score first, faster completion breaks ties; sorted() is stable
    return sorted(results, key=lambda r: (-r.score, r.duration_ms))


def build_leaderboard(quiz_id: Optional[str], results: Iterable[QuizResult], limit: int = LEADERBOARD_LIMIT) -> LeaderboardBoard:
    ranked = [
        RankedResult(
            rank=position,
            username=r.username,
            user_id=r.user_id,
            score=r.score,
            total_questions=r.total_questions,
            duration_ms=r.duration_ms,
            completed_at=r.completed_at,
        )
        for position, r in enumerate(rank_results(results)[:limit], start=1)
    ]
    return LeaderboardBoard(
        quiz_id=quiz_id,
        podium=ranked[:PODIUM_SIZE],
        others=ranked[PODIUM_SIZE:],
        is_empty=not ranked,
    )


class Leaderboard:
    """Pick a quiz, fetch its results and rank them."""

    def __init__(self, gateway: QuizGateway):
        self.gateway = gateway

    def quizzes(self) -> List[QuizSummary]:
        return [QuizSummary.of(q) for q in self.gateway.list_quizzes()]

    def select(self, quiz_id: Optional[str] = None) -> LeaderboardPage:
        quizzes = self.quizzes()
        if quiz_id is None and quizzes:
            quiz_id = quizzes[0].id

        if quiz_id is None:
            board = build_leaderboard(None, [])
        else:
            board = build_leaderboard(quiz_id, self.gateway.get_leaderboard(quiz_id))
        return LeaderboardPage(quizzes=quizzes, selected_quiz_id=quiz_id, board=board)
