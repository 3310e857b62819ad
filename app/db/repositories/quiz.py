"""
quizzes, quiz_tags 테이블 접근.
questions: JSON 배열, 각 문항은 text, options(리스트), correctIndex, explanation 그대로 저장.
tags는 quizzes.tags에 순서·중복 그대로 두고, 필터용 quiz_tags는 저장할 때마다 다시 만든다.
"""

from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.db.models import Attempt, Quiz, QuizTag, User
from app.schema.quiz import ValidatedQuiz

MAX_PAGE_SIZE = 100


def _questions_json(quiz: ValidatedQuiz) -> list[dict]:
    return [q.model_dump(by_alias=True) for q in quiz.questions]


class QuizRepo:
    """퀴즈 저장/조회/수정/삭제."""

    def _sync_tags(self, session: Session, quiz_id: int, tags: list[str]) -> None:
        for row in session.exec(select(QuizTag).where(QuizTag.quiz_id == quiz_id)).all():
            session.delete(row)
        session.flush()
        for tag in dict.fromkeys(tags):
            session.add(QuizTag(quiz_id=quiz_id, tag=tag))

    def insert(self, session: Session, *, owner_id: int, quiz: ValidatedQuiz) -> Quiz:
        row = Quiz(
            owner_id=owner_id,
            title=quiz.title,
            description=quiz.description,
            questions=_questions_json(quiz),
            visibility=quiz.visibility,
            tags=list(quiz.tags),
        )
        session.add(row)
        session.flush()
        self._sync_tags(session, row.id, row.tags)
        session.commit()
        session.refresh(row)
        return row

    def get_by_id(self, session: Session, quiz_id: int) -> Quiz | None:
        return session.get(Quiz, quiz_id)

    def replace(self, session: Session, row: Quiz, quiz: ValidatedQuiz) -> Quiz:
        """검증된 내용으로 덮어쓴다. owner_id는 건드리지 않는다."""
        row.title = quiz.title
        row.description = quiz.description
        row.questions = _questions_json(quiz)
        row.visibility = quiz.visibility
        row.tags = list(quiz.tags)
        session.add(row)
        self._sync_tags(session, row.id, row.tags)
        session.commit()
        session.refresh(row)
        return row

    def delete(self, session: Session, row: Quiz) -> None:
        """퀴즈와 딸린 태그·풀이 기록까지 삭제 (복구 불가)."""
        for tag in session.exec(select(QuizTag).where(QuizTag.quiz_id == row.id)).all():
            session.delete(tag)
        for attempt in session.exec(select(Attempt).where(Attempt.quiz_id == row.id)).all():
            session.delete(attempt)
        session.flush()
        session.delete(row)
        session.commit()

    def list_visible(
        self,
        session: Session,
        *,
        viewer_id: int | None,
        tags: list[str] | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Quiz], int]:
        """
        비로그인: public만. 로그인: public + 본인 퀴즈.
        tags가 있으면 하나라도 겹치는 퀴즈만. 최신순.
        Returns:
            (해당 페이지 행 목록, 전체 건수)
        """
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        if viewer_id is None:
            conditions = [Quiz.visibility == "public"]
        else:
            conditions = [or_(Quiz.visibility == "public", Quiz.owner_id == viewer_id)]
        if tags:
            conditions.append(Quiz.id.in_(select(QuizTag.quiz_id).where(QuizTag.tag.in_(tags))))

        stmt = (
            select(Quiz)
            .where(*conditions)
            .order_by(Quiz.created_at.desc(), Quiz.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = list(session.exec(stmt).all())
        total = session.exec(select(func.count()).select_from(Quiz).where(*conditions)).one()
        return rows, total

    def list_all_with_owner(self, session: Session) -> list[tuple[Quiz, User]]:
        """관리자용: 전체 퀴즈 + 작성자, 최신순."""
        stmt = (
            select(Quiz, User)
            .join(User, User.id == Quiz.owner_id)
            .order_by(Quiz.created_at.desc(), Quiz.id.desc())
        )
        return list(session.exec(stmt).all())

    def count_by_visibility(self, session: Session) -> dict[str, int]:
        stmt = select(Quiz.visibility, func.count()).group_by(Quiz.visibility)
        return {visibility: count for visibility, count in session.exec(stmt).all()}


quiz_repo = QuizRepo()
