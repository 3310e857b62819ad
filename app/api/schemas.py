"""
API 요청/응답 스키마. JSON 필드명은 camelCase.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schema.quiz import Question


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# ----- 인증 -----


class RegisterRequest(ApiModel):
    email: str
    name: str
    password: str


class LoginRequest(ApiModel):
    email: str
    password: str


class UserOut(ApiModel):
    id: int
    email: str
    name: str
    role: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# ----- 퀴즈 CRUD -----


class QuizSummary(ApiModel):
    """목록·생성 응답용 (문항 제외)."""

    id: int
    title: str
    description: str | None = None
    visibility: str
    tags: list[str]
    question_count: int
    created_at: datetime | None = None
    is_owner: bool = False


class QuizDetail(ApiModel):
    """퀴즈 단건 (문항 포함)."""

    id: int
    title: str
    description: str | None = None
    questions: list[Question]
    visibility: str
    tags: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_owner: bool = False


class QuizMutationResponse(ApiModel):
    message: str
    quiz: QuizSummary


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    pages: int


class QuizListResponse(ApiModel):
    quizzes: list[QuizSummary]
    pagination: Pagination


class MessageResponse(ApiModel):
    message: str


# ----- AI 생성 / 해설 -----


class QuizGenerateRequest(ApiModel):
    """범위 검사는 프롬프트 빌더에서 (거부 시 400)."""

    content: str
    question_count: int = Field(5, description="문항 수 (1~20)")
    difficulty: str = Field("medium", description="easy | medium | hard")


class ExplainRequest(ApiModel):
    question_text: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=1)
    correct_index: int
    user_answer: int | None = None


class ExplainResponse(ApiModel):
    explanation: str


# ----- 풀이 -----


class AttemptRequest(ApiModel):
    answers: list[int | None] = Field(..., description="문항 순서대로 고른 선택지 인덱스 (미응답은 null)")


class AnswerResult(ApiModel):
    q_index: int
    selected_index: int | None = None
    correct_index: int
    is_correct: bool


class AttemptResponse(ApiModel):
    id: int
    quiz_id: int
    correct: int
    total: int
    percentage: int
    passed: bool
    results: list[AnswerResult]


class AttemptHistoryItem(ApiModel):
    id: int
    quiz_id: int
    quiz_title: str
    score: int
    total: int
    created_at: datetime | None = None


class AttemptHistoryResponse(ApiModel):
    attempts: list[AttemptHistoryItem]


# ----- 관리자 -----


class AdminQuizItem(ApiModel):
    id: int
    title: str
    description: str | None = None
    visibility: str
    tags: list[str]
    question_count: int
    created_at: datetime | None = None
    owner_id: int
    owner_name: str
    owner_email: str


class AdminQuizListResponse(ApiModel):
    quizzes: list[AdminQuizItem]
    total: int


class AdminUserItem(ApiModel):
    id: int
    name: str
    email: str
    role: str
    created_at: datetime | None = None
    quiz_count: int


class AdminUserListResponse(ApiModel):
    users: list[AdminUserItem]
    total: int


class AdminStatsResponse(ApiModel):
    users: int
    quizzes: int
    public_quizzes: int
    private_quizzes: int
    attempts: int
