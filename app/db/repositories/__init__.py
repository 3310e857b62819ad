from app.db.repositories.attempt import attempt_repo
from app.db.repositories.quiz import quiz_repo
from app.db.repositories.user import user_repo

__all__ = [
    "attempt_repo",
    "quiz_repo",
    "user_repo",
]
