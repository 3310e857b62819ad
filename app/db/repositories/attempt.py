"""
attempts 테이블 접근: 퀴즈 풀이 결과 저장, 사용자별 기록 조회.
"""

from typing import Any

from sqlalchemy import func
from sqlmodel import Session, select

from app.db.models import Attempt, Quiz


class AttemptRepo:
    def insert(
        self,
        session: Session,
        *,
        user_id: int,
        quiz_id: int,
        answers: list[dict[str, Any]],
        score: int,
        total: int,
    ) -> Attempt:
        row = Attempt(user_id=user_id, quiz_id=quiz_id, answers=answers, score=score, total=total)
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    def list_by_user(self, session: Session, user_id: int, limit: int = 50) -> list[tuple[Attempt, Quiz]]:
        """사용자의 풀이 기록 + 퀴즈, 최신순."""
        stmt = (
            select(Attempt, Quiz)
            .join(Quiz, Quiz.id == Attempt.quiz_id)
            .where(Attempt.user_id == user_id)
            .order_by(Attempt.created_at.desc(), Attempt.id.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def count(self, session: Session) -> int:
        return session.exec(select(func.count()).select_from(Attempt)).one()


attempt_repo = AttemptRepo()
