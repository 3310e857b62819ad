"""
AI 퀴즈 생성·해설: 프롬프트 구성 → OpenAI 호출 → 응답 해석.
생성 결과는 저장하지 않는다(사용자 검토 후 별도 저장).
"""

import logging

from openai import OpenAI, OpenAIError

from app.core.config import settings
from app.quiz.interpreter import interpret
from app.quiz.prompt import build_explanation_prompt, build_prompt
from app.schema.quiz import GeneratedQuestionSet
from app.services.extraction import extract_text

logger = logging.getLogger(__name__)


class GenerationUnavailableError(RuntimeError):
    """OPENAI_API_KEY 미설정."""


class LLMCallError(RuntimeError):
    """외부 모델 호출 자체가 실패(네트워크, 인증, 타임아웃 등)."""


class QuizGenerationService:
    """OpenAI 클라이언트는 첫 호출 때 만든다. 테스트에서는 client를 주입."""

    def __init__(self, client: OpenAI | None = None, model: str | None = None) -> None:
        self._client = client
        self.model = model or settings.OPENAI_MODEL

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise GenerationUnavailableError("AI service is not configured")
            self._client = OpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.REQUEST_TIMEOUT,
            )
        return self._client

    def _call_llm(self, system_prompt: str | None, user_prompt: str, *, json_mode: bool = False) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=settings.OPENAI_TEMPERATURE,
                messages=messages,
                **kwargs,
            )
        except OpenAIError as exc:
            logger.exception("LLM 호출 실패 model=%s", self.model)
            raise LLMCallError(str(exc)) from exc
        return response.choices[0].message.content or ""

    def generate(
        self,
        content: str,
        question_count: int = 5,
        difficulty: str = "medium",
        *,
        min_chars: int | None = None,
    ) -> GeneratedQuestionSet:
        spec = build_prompt(content, question_count, difficulty, min_chars=min_chars)
        if spec.truncated:
            logger.info("입력 내용이 길어 %d자로 잘림", len(spec.content))

        logger.info("LLM 퀴즈 생성 호출 중 (문항 수=%d, 난이도=%s)", spec.question_count, spec.difficulty)
        raw = self._call_llm(spec.system_prompt, spec.user_prompt, json_mode=True)
        result = interpret(raw, spec.question_count, spec.difficulty, model=self.model)
        logger.info("퀴즈 생성 완료 수신 문항 수=%d", result.metadata.actual_count)
        return result

    def generate_from_document(
        self,
        data: bytes,
        filename: str | None = None,
        content_type: str | None = None,
        question_count: int = 5,
        difficulty: str = "medium",
    ) -> GeneratedQuestionSet:
        text = extract_text(data, filename=filename, content_type=content_type)
        logger.info("문서 텍스트 추출 완료 filename=%s 길이=%d", filename, len(text))
        return self.generate(text, question_count, difficulty, min_chars=settings.MIN_DOCUMENT_CHARS)

    def explain(
        self,
        question_text: str,
        options: list[str],
        correct_index: int,
        user_answer: int | None = None,
    ) -> str:
        prompt = build_explanation_prompt(question_text, options, correct_index, user_answer)
        logger.info("정답 해설 생성 중")
        return self._call_llm(None, prompt).strip()
