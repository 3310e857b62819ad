"""
users 테이블 접근.
"""

from sqlalchemy import func
from sqlmodel import Session, select

from app.db.models import Quiz, User


class UserRepo:
    def create(
        self,
        session: Session,
        *,
        email: str,
        name: str,
        password_hash: str,
        role: str = "user",
    ) -> User:
        user = User(email=email, name=name, password_hash=password_hash, role=role)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def get_by_id(self, session: Session, user_id: int) -> User | None:
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        return session.exec(select(User).where(User.email == email)).first()

    def list_with_quiz_counts(self, session: Session) -> list[tuple[User, int]]:
        """관리자용: 전체 사용자 + 작성한 퀴즈 수, 가입 최신순."""
        stmt = (
            select(User, func.count(Quiz.id))
            .join(Quiz, Quiz.owner_id == User.id, isouter=True)
            .group_by(User.id)
            .order_by(User.created_at.desc(), User.id.desc())
        )
        return list(session.exec(stmt).all())

    def count(self, session: Session) -> int:
        return session.exec(select(func.count()).select_from(User)).one()


user_repo = UserRepo()
