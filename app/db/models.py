"""
SQLModel 테이블 정의.
JSON 컬럼은 PostgreSQL에서는 JSONB, 그 외(SQLite 테스트 등)에서는 JSON.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

JSONType = JSON().with_variant(JSONB(), "postgresql")


class User(SQLModel, table=True):
    """사용자. role은 user | admin."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(nullable=False, unique=True, index=True)
    name: str = Field(nullable=False)
    password_hash: str = Field(nullable=False)
    role: str = Field(default="user", nullable=False, index=True)
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), server_default=func.now()),
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class Quiz(SQLModel, table=True):
    """퀴즈. questions는 문항 배열(text, options, correctIndex, explanation) JSON 그대로."""

    __tablename__ = "quizzes"

    id: int | None = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    title: str = Field(nullable=False, index=True)
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    questions: list[dict[str, Any]] = Field(sa_column=Column(JSONType, nullable=False))
    visibility: str = Field(default="public", nullable=False, index=True)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), index=True),
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    )


class QuizTag(SQLModel, table=True):
    """태그 필터 조회용. quizzes.tags(순서·중복 보존)에서 파생되며 저장 시 함께 갱신."""

    __tablename__ = "quiz_tags"
    __table_args__ = (UniqueConstraint("quiz_id", "tag"),)

    id: int | None = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key="quizzes.id", nullable=False, index=True)
    tag: str = Field(nullable=False, index=True)


class Attempt(SQLModel, table=True):
    """퀴즈 풀이 기록. answers는 [{qIndex, selectedIndex}]."""

    __tablename__ = "attempts"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    quiz_id: int = Field(foreign_key="quizzes.id", nullable=False, index=True)
    answers: list[dict[str, Any]] = Field(sa_column=Column(JSONType, nullable=False))
    score: int = Field(nullable=False)
    total: int = Field(nullable=False)
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), index=True),
    )
