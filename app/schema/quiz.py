"""
퀴즈 도메인 스키마: 문항, 검증된 퀴즈, 검증 실패 항목, AI 생성 문항 세트.
- JSON 필드명은 camelCase(correctIndex 등), 파이썬 속성은 snake_case.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Visibility = Literal["public", "private"]
Difficulty = Literal["easy", "medium", "hard"]

VISIBILITIES: tuple[str, ...] = ("public", "private")
DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")

# 구조 제약
TITLE_MIN_CHARS = 3
TITLE_MAX_CHARS = 100
DESCRIPTION_MAX_CHARS = 500
QUESTION_TEXT_MIN_CHARS = 5
OPTIONS_MIN = 2
OPTIONS_MAX = 6
TAGS_MAX = 10


class Question(BaseModel):
    """퀴즈 문항 한 개: 질문, 선택지(2~6개), 정답 인덱스(0부터), 해설."""

    model_config = ConfigDict(populate_by_name=True)

    text: str
    options: list[str]
    correct_index: int = Field(..., alias="correctIndex")
    explanation: str | None = None


class ValidatedQuiz(BaseModel):
    """검증 게이트를 통과한 퀴즈: 문자열 trim, 기본값 적용 완료."""

    title: str
    description: str | None = None
    questions: list[Question]
    visibility: Visibility = "public"
    tags: list[str] = Field(default_factory=list)


class ValidationFailure(BaseModel):
    """위반 규칙 하나. index는 문항 관련 위반일 때만 존재."""

    field: str
    index: int | None = None
    message: str


class GenerationMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    generated_at: datetime = Field(..., alias="generatedAt")
    requested_count: int = Field(..., alias="requestedCount")
    actual_count: int = Field(..., alias="actualCount")
    difficulty: Difficulty
    model: str | None = None


class GeneratedQuestionSet(BaseModel):
    """AI 생성 결과. 저장 전까지 클라이언트 검토용으로만 존재."""

    questions: list[Question]
    metadata: GenerationMetadata
