"""
퀴즈 풀이 채점.
"""

from collections.abc import Sequence

from pydantic import BaseModel

from app.schema.quiz import Question


class Score(BaseModel):
    correct: int
    total: int
    percentage: int
    passed: bool


def score_answers(
    questions: Sequence[Question],
    answers: Sequence[int | None],
    passing_percentage: int = 70,
) -> Score:
    """
    answers[i]는 i번 문항에서 고른 선택지 인덱스. 빠졌거나 None, 범위 밖이면 오답 처리.
    percentage는 반올림(0.5 올림) 정수.
    """
    correct = 0
    for i, q in enumerate(questions):
        picked = answers[i] if i < len(answers) else None
        if picked is not None and picked == q.correct_index:
            correct += 1

    total = len(questions)
    percentage = (correct * 100 * 2 + total) // (2 * total) if total else 0
    return Score(
        correct=correct,
        total=total,
        percentage=percentage,
        passed=percentage >= passing_percentage,
    )
