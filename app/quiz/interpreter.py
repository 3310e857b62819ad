"""
AI 생성 응답 해석: 코드 펜스 제거 → JSON 파싱 → 문항별 검증(첫 오류에서 중단).

검증 게이트와 달리 여기서는 첫 번째 잘못된 문항에서 바로 실패한다.
신뢰할 수 없는 생성기의 출력이라 정확한 위치(index)만 알려주면 충분.
재시도는 하지 않는다(호출 측 정책).
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from enum import Enum

from app.quiz.validation import check_question, normalize_question
from app.schema.quiz import GeneratedQuestionSet, GenerationMetadata

logger = logging.getLogger(__name__)

# 바깥 펜스 한 겹만: ```json ... ``` / ``` ... ```
_FENCE_RE = re.compile(r"\A```[\w+.-]*[ \t]*\r?\n?(.*?)\r?\n?```\Z", re.DOTALL)


class GenerationFailureKind(str, Enum):
    MALFORMED_OUTPUT = "MalformedOutput"
    MISSING_QUESTIONS_FIELD = "MissingQuestionsField"
    INVALID_QUESTION = "InvalidQuestion"


class GenerationError(ValueError):
    """생성 결과를 쓸 수 없음. raw_text는 개발 환경 진단용."""

    def __init__(
        self,
        kind: GenerationFailureKind,
        reason: str,
        *,
        index: int | None = None,
        raw_text: str | None = None,
    ):
        self.kind = kind
        self.reason = reason
        self.index = index
        self.raw_text = raw_text
        super().__init__(reason)


def strip_fences(text: str) -> str:
    """앞뒤 공백 제거 후, 펜스로 감싸져 있으면 바깥 한 겹만 벗긴다. 안쪽은 그대로."""
    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        return match.group(1)
    return cleaned


def interpret(
    raw_text: str,
    requested_count: int,
    difficulty: str = "medium",
    *,
    model: str | None = None,
    generated_at: datetime | None = None,
) -> GeneratedQuestionSet:
    """모델 원문을 GeneratedQuestionSet으로. 실패 시 GenerationError."""
    cleaned = strip_fences(raw_text or "")

    try:
        payload = json.loads(cleaned)
    except (json.JSONDecodeError, RecursionError) as exc:
        logger.warning("AI 응답 JSON 파싱 실패: %s raw=%r", exc, cleaned[:500])
        raise GenerationError(
            GenerationFailureKind.MALFORMED_OUTPUT,
            "AI returned invalid format",
            raw_text=cleaned,
        ) from exc

    questions = payload.get("questions") if isinstance(payload, dict) else None
    if not isinstance(questions, list):
        raise GenerationError(
            GenerationFailureKind.MISSING_QUESTIONS_FIELD,
            "AI response missing questions array",
            raw_text=cleaned,
        )

    for i, q in enumerate(questions):
        failures = check_question(q, i)
        if failures:
            reason = failures[0].message
            logger.warning("AI 생성 문항 검증 실패 index=%d reason=%s", i, reason)
            raise GenerationError(
                GenerationFailureKind.INVALID_QUESTION,
                reason,
                index=i,
                raw_text=cleaned,
            )

    normalized = [normalize_question(q) for q in questions]
    if len(normalized) != requested_count:
        logger.info("요청 문항 수와 다름 requested=%d actual=%d", requested_count, len(normalized))

    return GeneratedQuestionSet(
        questions=normalized,
        metadata=GenerationMetadata(
            generated_at=generated_at or datetime.now(timezone.utc),
            requested_count=requested_count,
            actual_count=len(normalized),
            difficulty=difficulty,
            model=model,
        ),
    )
