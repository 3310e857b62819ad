"""
인증/권한: 비밀번호 해시(bcrypt), 액세스 토큰(JWT), 퀴즈 조회·수정 권한 판정.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlmodel import Session

from app.core.config import settings
from app.db.models import Quiz, User
from app.db.repositories.user import user_repo

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_CHARS = 8
NAME_MIN_CHARS = 2
NAME_MAX_CHARS = 50


class Identity(BaseModel):
    """요청자 신원. role은 DB 기준."""

    user_id: int
    role: Literal["user", "admin"] = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class RegistrationError(ValueError):
    pass


class EmailAlreadyRegisteredError(RegistrationError):
    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(user_id), "type": "access", "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> int | None:
    """유효한 액세스 토큰이면 user_id, 아니면 None."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


def register_user(session: Session, *, email: str, name: str, password: str) -> User:
    email = (email or "").strip().lower()
    name = (name or "").strip()
    if not email or "@" not in email:
        raise RegistrationError("Please enter a valid email")
    if not NAME_MIN_CHARS <= len(name) <= NAME_MAX_CHARS:
        raise RegistrationError(f"Name must be {NAME_MIN_CHARS}-{NAME_MAX_CHARS} characters")
    if len(password or "") < MIN_PASSWORD_CHARS:
        raise RegistrationError(f"Password must be {MIN_PASSWORD_CHARS}+ characters")
    if user_repo.get_by_email(session, email):
        raise EmailAlreadyRegisteredError("Email already registered")

    user = user_repo.create(session, email=email, name=name, password_hash=hash_password(password))
    logger.info("사용자 등록 user_id=%s", user.id)
    return user


def authenticate_user(session: Session, email: str, password: str) -> User | None:
    user = user_repo.get_by_email(session, (email or "").strip().lower())
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, role=user.role)


def can_view(identity: Identity | None, quiz: Quiz) -> bool:
    """public이면 누구나, private은 작성자 또는 관리자."""
    return quiz.visibility == "public" or can_modify(identity, quiz)


def can_modify(identity: Identity | None, quiz: Quiz) -> bool:
    """수정·삭제 권한: 작성자 또는 관리자."""
    if identity is None:
        return False
    return identity.is_admin or identity.user_id == quiz.owner_id
