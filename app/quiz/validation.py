"""
퀴즈 검증 게이트: 직접 작성한 퀴즈와 AI 생성 문항 모두 여기서 같은 규칙으로 검사한다.

- 모든 위반을 모아서 반환(첫 위반에서 멈추지 않음). UI가 모든 필드를 한 번에 표시할 수 있게.
- I/O 없음, 같은 입력이면 항상 같은 결과.
- 통과 시 문자열 trim + 기본값(visibility=public, tags=[]) 적용된 ValidatedQuiz.
"""

from collections.abc import Mapping
from typing import Any

from app.schema.quiz import (
    DESCRIPTION_MAX_CHARS,
    OPTIONS_MAX,
    OPTIONS_MIN,
    QUESTION_TEXT_MIN_CHARS,
    TAGS_MAX,
    TITLE_MAX_CHARS,
    TITLE_MIN_CHARS,
    VISIBILITIES,
    Question,
    ValidatedQuiz,
    ValidationFailure,
)


class QuizValidationError(ValueError):
    """검증 실패. failures에 위반 규칙별 항목이 모두 들어 있다."""

    def __init__(self, failures: list[ValidationFailure]):
        self.failures = failures
        super().__init__("; ".join(f.message for f in failures))


def _is_int(value: Any) -> bool:
    # bool은 int의 하위 클래스라 따로 제외
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_explanation(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    return value.strip()


def check_question(candidate: Any, index: int) -> list[ValidationFailure]:
    """문항 하나에 대한 규칙 검사. 위반 없으면 빈 리스트."""
    if not isinstance(candidate, Mapping):
        return [ValidationFailure(field="questions", index=index, message=f"Question {index + 1} must be an object")]

    failures: list[ValidationFailure] = []

    text = candidate.get("text")
    if not isinstance(text, str) or len(text.strip()) < QUESTION_TEXT_MIN_CHARS:
        failures.append(
            ValidationFailure(
                field="text",
                index=index,
                message=f"Question {index + 1} must be at least {QUESTION_TEXT_MIN_CHARS} characters",
            )
        )

    options = candidate.get("options")
    option_count = len(options) if isinstance(options, list) else 0
    if not isinstance(options, list) or not OPTIONS_MIN <= option_count <= OPTIONS_MAX:
        failures.append(
            ValidationFailure(
                field="options",
                index=index,
                message=f"Question {index + 1} must have {OPTIONS_MIN}-{OPTIONS_MAX} options",
            )
        )
    if isinstance(options, list) and any(not isinstance(o, str) for o in options):
        failures.append(
            ValidationFailure(
                field="options",
                index=index,
                message=f"Question {index + 1} options must be strings",
            )
        )
    elif isinstance(options, list) and any(not o.strip() for o in options):
        failures.append(
            ValidationFailure(
                field="options",
                index=index,
                message=f"Question {index + 1} has an empty option",
            )
        )

    correct_index = candidate.get("correctIndex")
    if not _is_int(correct_index) or not 0 <= correct_index < option_count:
        failures.append(
            ValidationFailure(
                field="correctIndex",
                index=index,
                message=f"Question {index + 1} has invalid correctIndex (must be 0-{max(option_count - 1, 0)})",
            )
        )

    return failures


def normalize_question(candidate: Mapping[str, Any]) -> Question:
    """check_question을 통과한 문항을 trim해서 Question으로."""
    return Question(
        text=candidate["text"].strip(),
        options=[o.strip() for o in candidate["options"]],
        correct_index=candidate["correctIndex"],
        explanation=_coerce_explanation(candidate.get("explanation")),
    )


def collect_failures(candidate: Any) -> list[ValidationFailure]:
    """퀴즈 payload의 모든 위반 항목을 규칙 순서대로 반환."""
    if not isinstance(candidate, Mapping):
        return [ValidationFailure(field="body", message="Quiz payload must be an object")]

    failures: list[ValidationFailure] = []

    title = candidate.get("title")
    if not isinstance(title, str) or not title.strip():
        failures.append(ValidationFailure(field="title", message="Title is required"))
    elif not TITLE_MIN_CHARS <= len(title.strip()) <= TITLE_MAX_CHARS:
        failures.append(
            ValidationFailure(
                field="title",
                message=f"Title must be {TITLE_MIN_CHARS}-{TITLE_MAX_CHARS} characters",
            )
        )

    description = candidate.get("description")
    if description is not None:
        if not isinstance(description, str):
            failures.append(ValidationFailure(field="description", message="Description must be a string"))
        elif len(description.strip()) > DESCRIPTION_MAX_CHARS:
            failures.append(
                ValidationFailure(
                    field="description",
                    message=f"Description must be at most {DESCRIPTION_MAX_CHARS} characters",
                )
            )

    questions = candidate.get("questions")
    if not isinstance(questions, list) or not questions:
        failures.append(ValidationFailure(field="questions", message="Quiz must have at least 1 question"))
    else:
        for i, q in enumerate(questions):
            failures.extend(check_question(q, i))

    tags = candidate.get("tags")
    if tags is not None:
        if not isinstance(tags, list) or any(not isinstance(t, str) for t in tags):
            failures.append(ValidationFailure(field="tags", message="Tags must be a list of strings"))
        elif len(tags) > TAGS_MAX:
            failures.append(ValidationFailure(field="tags", message=f"Maximum {TAGS_MAX} tags allowed"))

    visibility = candidate.get("visibility")
    if visibility is not None and visibility not in VISIBILITIES:
        failures.append(
            ValidationFailure(field="visibility", message=f"{visibility!r} is not a valid visibility")
        )

    return failures


def validate_quiz(candidate: Mapping[str, Any] | ValidatedQuiz) -> ValidatedQuiz:
    """
    퀴즈 payload 검증 후 정규화된 ValidatedQuiz 반환.
    위반이 하나라도 있으면 QuizValidationError (모든 위반 포함).
    이미 검증된 ValidatedQuiz를 다시 넣어도 동일한 결과가 나온다.
    """
    if isinstance(candidate, ValidatedQuiz):
        candidate = candidate.model_dump(by_alias=True)

    failures = collect_failures(candidate)
    if failures:
        raise QuizValidationError(failures)

    description = candidate.get("description")
    return ValidatedQuiz(
        title=candidate["title"].strip(),
        description=description.strip() if description is not None else None,
        questions=[normalize_question(q) for q in candidate["questions"]],
        visibility=candidate.get("visibility") or "public",
        tags=[t.strip() for t in candidate.get("tags") or []],
    )
