"""
퀴즈 생성 프롬프트 구성. 외부 모델 호출 전에 입력을 여기서 거른다(I/O 없음).
"""

from __future__ import annotations

from pydantic import BaseModel

from app.core.config import settings
from app.schema.quiz import DIFFICULTIES, Difficulty

MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 20
GENERATED_OPTION_COUNT = 4

SYSTEM_PROMPT = (
    "You are an expert quiz creator. You write clear multiple-choice questions "
    "that are grounded only in the content you are given."
)


class PromptBuildError(ValueError):
    """모델 호출 전 입력 거부 (내용 길이, 문항 수, 난이도)."""


class PromptSpec(BaseModel):
    system_prompt: str
    user_prompt: str
    content: str
    question_count: int
    difficulty: Difficulty
    truncated: bool = False


def clamp_content(content: str, max_chars: int | None) -> tuple[str, bool]:
    """max_chars 초과분은 뒤에서 잘라낸다. (잘린 내용, 잘림 여부)"""
    if max_chars and len(content) > max_chars:
        return content[:max_chars], True
    return content, False


def build_prompt(
    content: str,
    question_count: int,
    difficulty: str,
    *,
    min_chars: int | None = None,
    max_chars: int | None = None,
) -> PromptSpec:
    """
    (내용, 문항 수, 난이도)로 생성 프롬프트를 만든다.

    min_chars: 직접 입력 텍스트는 MIN_CONTENT_CHARS, 문서 추출 텍스트는 호출 측에서 지정.
    max_chars: 초과분은 거부하지 않고 잘라낸다 (기본 MAX_CONTENT_CHARS).
    """
    if min_chars is None:
        min_chars = settings.MIN_CONTENT_CHARS
    if max_chars is None:
        max_chars = settings.MAX_CONTENT_CHARS

    if not isinstance(content, str) or not content.strip():
        raise PromptBuildError("Content is required and must be a string")
    content = content.strip()
    if len(content) < min_chars:
        raise PromptBuildError(f"Content is too short. Please provide at least {min_chars} characters")

    if (
        not isinstance(question_count, int)
        or isinstance(question_count, bool)
        or not MIN_QUESTION_COUNT <= question_count <= MAX_QUESTION_COUNT
    ):
        raise PromptBuildError(
            f"Question count must be between {MIN_QUESTION_COUNT} and {MAX_QUESTION_COUNT}"
        )
    if difficulty not in DIFFICULTIES:
        raise PromptBuildError(f"Difficulty must be one of: {', '.join(DIFFICULTIES)}")

    content, truncated = clamp_content(content, max_chars)

    user_prompt = f"""
Generate {question_count} multiple-choice quiz questions based on the following content.

DIFFICULTY LEVEL: {difficulty}

CONTENT:
{content}

REQUIREMENTS:
1. Create EXACTLY {question_count} questions
2. Each question must have exactly {GENERATED_OPTION_COUNT} options
3. Questions should be clear and unambiguous
4. Exactly one option must be correct
5. Include a brief explanation for the correct answer
6. Difficulty should be: {difficulty}

OUTPUT FORMAT (JSON):
{{
  "questions": [
    {{
      "text": "Question text here?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctIndex": 0,
      "explanation": "Why this answer is correct"
    }}
  ]
}}

IMPORTANT:
- Return ONLY valid JSON. No markdown formatting, no code fences, no extra text
- correctIndex is the 0-based array index of the correct option (0-{GENERATED_OPTION_COUNT - 1})
- explanation is optional
- Questions should test understanding, not just memorization
""".strip()

    return PromptSpec(
        system_prompt=SYSTEM_PROMPT,
        user_prompt=user_prompt,
        content=content,
        question_count=question_count,
        difficulty=difficulty,
        truncated=truncated,
    )


def build_explanation_prompt(
    question_text: str,
    options: list[str],
    correct_index: int,
    user_answer: int | None = None,
) -> str:
    """정답 해설 프롬프트. user_answer가 오답이면 왜 틀렸는지도 설명하게 한다."""
    if not options or not 0 <= correct_index < len(options):
        raise PromptBuildError("correctIndex is out of range")
    correct = options[correct_index]
    picked = options[user_answer] if user_answer is not None and 0 <= user_answer < len(options) else None

    opts_text = "\n".join(f"{i}. {opt}" for i, opt in enumerate(options, 1))
    lines = [
        "You are a helpful tutor explaining quiz answers to students.",
        "",
        f"Question: {question_text}",
        "",
        "Options:",
        opts_text,
        "",
        f"Correct Answer: {correct}",
    ]
    if picked is not None:
        lines.append(f"Student's Answer: {picked}")
    lines += ["", f'Provide a clear, educational explanation of why "{correct}" is the correct answer.']
    if picked is not None and picked != correct:
        lines.append(f'Also briefly explain why "{picked}" is incorrect.')
    lines += [
        "",
        "Keep your explanation:",
        "- Clear and concise (2-4 sentences)",
        "- Educational and encouraging",
        "- Easy to understand for beginners",
    ]
    return "\n".join(lines)
