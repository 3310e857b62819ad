from app.db.connection import engine, get_session, init_db
from app.db.models import Attempt, Quiz, QuizTag, User
from app.db.repositories.attempt import attempt_repo
from app.db.repositories.quiz import quiz_repo
from app.db.repositories.user import user_repo

__all__ = [
    "engine",
    "get_session",
    "init_db",
    "Attempt",
    "Quiz",
    "QuizTag",
    "User",
    "attempt_repo",
    "quiz_repo",
    "user_repo",
]
