"""
FastAPI 의존성: DB 세션, 요청자 신원, 생성 서비스.
테스트에서는 app.dependency_overrides로 교체한다.
"""

from functools import lru_cache
from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from app.db.connection import get_session
from app.db.repositories.user import user_repo
from app.services.auth import Identity, decode_access_token, identity_for
from app.services.quiz_generation import QuizGenerationService

security = HTTPBearer(auto_error=False)


def get_db_session() -> Generator[Session, None, None]:
    with get_session() as session:
        yield session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: Session = Depends(get_db_session),
) -> Identity:
    """Bearer 토큰 필수. role은 DB에서 다시 읽는다."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")
    user = user_repo.get_by_id(session, user_id)
    if user is None:
        raise _unauthorized("User not found")
    return identity_for(user)


def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: Session = Depends(get_db_session),
) -> Identity | None:
    """토큰이 없거나 유효하지 않으면 비로그인(None)으로 취급."""
    if credentials is None:
        return None
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        return None
    user = user_repo.get_by_id(session, user_id)
    return identity_for(user) if user else None


def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden - Admin access required")
    return identity


@lru_cache
def get_generation_service() -> QuizGenerationService:
    return QuizGenerationService()
