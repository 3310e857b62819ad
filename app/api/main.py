"""
FastAPI 앱: 회원가입·로그인, 퀴즈 CRUD, AI 퀴즈 생성·해설, 풀이 채점, 관리자 조회.

권한 정책:
- 볼 수 없는 퀴즈(남의 private)는 조회·수정·삭제·풀이 모두 404로 통일 (존재 여부 노출 안 함).
- 볼 수는 있지만 수정 권한이 없으면 403.
- 권한 검사는 검증·생성 작업보다 먼저.
"""

import logging
import math
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlmodel import Session

from app.api.deps import (
    get_current_identity,
    get_db_session,
    get_generation_service,
    get_optional_identity,
    require_admin,
)
from app.api.schemas import (
    AdminQuizItem,
    AdminQuizListResponse,
    AdminStatsResponse,
    AdminUserItem,
    AdminUserListResponse,
    AnswerResult,
    AttemptHistoryItem,
    AttemptHistoryResponse,
    AttemptRequest,
    AttemptResponse,
    ExplainRequest,
    ExplainResponse,
    LoginRequest,
    MessageResponse,
    Pagination,
    QuizDetail,
    QuizGenerateRequest,
    QuizListResponse,
    QuizMutationResponse,
    QuizSummary,
    RegisterRequest,
    TokenResponse,
    UserOut,
)
from app.core.config import settings
from app.db.connection import dispose_db, init_db
from app.db.models import Quiz, User
from app.db.repositories.attempt import attempt_repo
from app.db.repositories.quiz import quiz_repo
from app.db.repositories.user import user_repo
from app.quiz.interpreter import GenerationError
from app.quiz.prompt import PromptBuildError
from app.quiz.scoring import score_answers
from app.quiz.validation import QuizValidationError, validate_quiz
from app.schema.quiz import GeneratedQuestionSet, Question, ValidatedQuiz
from app.services.auth import (
    EmailAlreadyRegisteredError,
    Identity,
    RegistrationError,
    authenticate_user,
    can_modify,
    can_view,
    create_access_token,
    register_user,
)
from app.services.extraction import ExtractionError
from app.services.quiz_generation import (
    GenerationUnavailableError,
    LLMCallError,
    QuizGenerationService,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "questions", "visibility", "tags")


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email, name=user.name, role=user.role)


def _quiz_summary(row: Quiz, identity: Identity | None) -> QuizSummary:
    return QuizSummary(
        id=row.id,
        title=row.title,
        description=row.description,
        visibility=row.visibility,
        tags=row.tags or [],
        question_count=len(row.questions or []),
        created_at=row.created_at,
        is_owner=identity is not None and identity.user_id == row.owner_id,
    )


def _quiz_detail(row: Quiz, identity: Identity | None) -> QuizDetail:
    return QuizDetail(
        id=row.id,
        title=row.title,
        description=row.description,
        questions=[Question.model_validate(q) for q in row.questions],
        visibility=row.visibility,
        tags=row.tags or [],
        created_at=row.created_at,
        updated_at=row.updated_at,
        is_owner=identity is not None and identity.user_id == row.owner_id,
    )


def _gate(candidate: Any) -> ValidatedQuiz:
    """검증 게이트 통과 못 하면 위반 목록 전체를 400으로."""
    try:
        return validate_quiz(candidate)
    except QuizValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Quiz validation failed",
                "violations": [f.model_dump() for f in e.failures],
            },
        )


def _load_viewable(session: Session, quiz_id: int, identity: Identity | None) -> Quiz:
    row = quiz_repo.get_by_id(session, quiz_id)
    if row is None or not can_view(identity, row):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return row


def _load_modifiable(session: Session, quiz_id: int, identity: Identity, action: str) -> Quiz:
    row = _load_viewable(session, quiz_id, identity)
    if not can_modify(identity, row):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only {action} your own quizzes",
        )
    return row


def _generation_failure(e: GenerationError) -> HTTPException:
    detail: dict[str, Any] = {
        "error": "AI returned invalid format. Please try again.",
        "kind": e.kind.value,
        "index": e.index,
    }
    if settings.is_development:
        detail["reason"] = e.reason
        detail["details"] = e.raw_text
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


def _run_generation(fn, *args, **kwargs) -> GeneratedQuestionSet:
    """생성 계열 예외를 HTTP 응답으로 분류."""
    try:
        return fn(*args, **kwargs)
    except GenerationError as e:
        raise _generation_failure(e)
    except ExtractionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PromptBuildError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except GenerationUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except LLMCallError as e:
        detail: dict[str, Any] = {"error": "Failed to generate quiz"}
        if settings.is_development:
            detail["details"] = str(e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
    except Exception:
        logger.exception("퀴즈 생성 실패")
        raise HTTPException(status_code=500, detail="Failed to generate quiz")


@asynccontextmanager
async def lifespan(app):
    init_db()
    yield
    dispose_db()


# FastAPI app은 router를 쓰지 않고 여기서 직접 등록
def create_app():
    from fastapi import FastAPI
    app = FastAPI(
        title="Quiz Maker API",
        description="퀴즈 작성·조회·풀이, AI 퀴즈 생성(텍스트/PDF), 관리자 조회",
        version="0.1.0",
        lifespan=lifespan,
    )

    # ----- 인증 -----

    @app.post(
        "/auth/register",
        response_model=UserOut,
        status_code=status.HTTP_201_CREATED,
        summary="회원가입",
    )
    def auth_register(body: RegisterRequest, session: Session = Depends(get_db_session)) -> UserOut:
        try:
            user = register_user(session, email=body.email, name=body.name, password=body.password)
        except EmailAlreadyRegisteredError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except RegistrationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return _user_out(user)

    @app.post("/auth/login", response_model=TokenResponse, summary="로그인 (Bearer 토큰 발급)")
    def auth_login(body: LoginRequest, session: Session = Depends(get_db_session)) -> TokenResponse:
        user = authenticate_user(session, body.email, body.password)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return TokenResponse(access_token=create_access_token(user.id), user=_user_out(user))

    @app.get("/auth/me", response_model=UserOut, summary="내 정보")
    def auth_me(
        identity: Identity = Depends(get_current_identity),
        session: Session = Depends(get_db_session),
    ) -> UserOut:
        return _user_out(user_repo.get_by_id(session, identity.user_id))

    # ----- 퀴즈 CRUD -----

    @app.get(
        "/quizzes",
        response_model=QuizListResponse,
        summary="퀴즈 목록",
        description="비로그인: public만. 로그인: public + 내 퀴즈. tags는 쉼표 구분, 하나라도 일치하면 포함.",
    )
    def quiz_list(
        page: int = Query(1),
        limit: int = Query(20),
        tags: str | None = Query(None),
        identity: Identity | None = Depends(get_optional_identity),
        session: Session = Depends(get_db_session),
    ) -> QuizListResponse:
        page = max(page, 1)
        limit = min(max(limit, 1), 100)
        tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else []
        try:
            rows, total = quiz_repo.list_visible(
                session,
                viewer_id=identity.user_id if identity else None,
                tags=tag_list,
                page=page,
                limit=limit,
            )
        except Exception:
            logger.exception("퀴즈 목록 조회 실패")
            raise HTTPException(status_code=500, detail="Failed to fetch quizzes")
        return QuizListResponse(
            quizzes=[_quiz_summary(r, identity) for r in rows],
            pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
        )

    @app.post(
        "/quizzes",
        response_model=QuizMutationResponse,
        status_code=status.HTTP_201_CREATED,
        summary="퀴즈 생성",
        description="검증 게이트 통과 시 저장. 실패하면 위반 항목 전체를 400으로 반환.",
    )
    def quiz_create(
        body: Any = Body(...),
        identity: Identity = Depends(get_current_identity),
        session: Session = Depends(get_db_session),
    ) -> QuizMutationResponse:
        quiz = _gate(body)
        try:
            row = quiz_repo.insert(session, owner_id=identity.user_id, quiz=quiz)
        except Exception:
            logger.exception("퀴즈 저장 실패")
            raise HTTPException(status_code=500, detail="Failed to create quiz")
        logger.info("퀴즈 생성 quiz_id=%s owner_id=%s 문항 수=%d", row.id, identity.user_id, len(quiz.questions))
        return QuizMutationResponse(message="Quiz created successfully", quiz=_quiz_summary(row, identity))

    @app.get("/quizzes/{quiz_id}", response_model=QuizDetail, summary="퀴즈 단건 (문항 포함)")
    def quiz_get(
        quiz_id: int,
        identity: Identity | None = Depends(get_optional_identity),
        session: Session = Depends(get_db_session),
    ) -> QuizDetail:
        return _quiz_detail(_load_viewable(session, quiz_id, identity), identity)

    @app.put(
        "/quizzes/{quiz_id}",
        response_model=QuizMutationResponse,
        summary="퀴즈 수정 (작성자/관리자)",
        description="보낸 필드만 교체한 뒤 전체를 다시 검증. ownerId는 변경 불가.",
    )
    def quiz_update(
        quiz_id: int,
        body: Any = Body(...),
        identity: Identity = Depends(get_current_identity),
        session: Session = Depends(get_db_session),
    ) -> QuizMutationResponse:
        row = _load_modifiable(session, quiz_id, identity, "edit")
        if not isinstance(body, dict):
            _gate(body)
        merged = {
            "title": row.title,
            "description": row.description,
            "questions": row.questions,
            "visibility": row.visibility,
            "tags": row.tags,
        }
        merged.update({k: body[k] for k in EDITABLE_FIELDS if k in body})
        quiz = _gate(merged)
        try:
            row = quiz_repo.replace(session, row, quiz)
        except Exception:
            logger.exception("퀴즈 수정 실패 quiz_id=%s", quiz_id)
            raise HTTPException(status_code=500, detail="Failed to update quiz")
        return QuizMutationResponse(message="Quiz updated successfully", quiz=_quiz_summary(row, identity))

    @app.delete("/quizzes/{quiz_id}", response_model=MessageResponse, summary="퀴즈 삭제 (작성자/관리자)")
    def quiz_delete(
        quiz_id: int,
        identity: Identity = Depends(get_current_identity),
        session: Session = Depends(get_db_session),
    ) -> MessageResponse:
        row = _load_modifiable(session, quiz_id, identity, "delete")
        try:
            quiz_repo.delete(session, row)
        except Exception:
            logger.exception("퀴즈 삭제 실패 quiz_id=%s", quiz_id)
            raise HTTPException(status_code=500, detail="Failed to delete quiz")
        logger.info("퀴즈 삭제 quiz_id=%s by user_id=%s", quiz_id, identity.user_id)
        return MessageResponse(message="Quiz deleted successfully")

    # ----- AI 생성 / 해설 -----

    @app.post(
        "/quizzes/generate",
        response_model=GeneratedQuestionSet,
        summary="AI 퀴즈 생성 (텍스트)",
        description="생성 결과만 반환하고 저장하지 않음. 저장은 POST /quizzes.",
    )
    def quiz_generate(
        body: QuizGenerateRequest,
        identity: Identity = Depends(get_current_identity),
        service: QuizGenerationService = Depends(get_generation_service),
    ) -> GeneratedQuestionSet:
        logger.info("AI 퀴즈 생성 요청 user_id=%s", identity.user_id)
        return _run_generation(
            service.generate,
            body.content,
            body.question_count,
            body.difficulty,
        )

    @app.post(
        "/quizzes/generate/upload",
        response_model=GeneratedQuestionSet,
        summary="AI 퀴즈 생성 (PDF/텍스트 파일)",
        description="문서에서 텍스트를 추출한 뒤 생성. 추출 실패는 400, 생성 실패는 502.",
    )
    def quiz_generate_upload(
        file: UploadFile = File(...),
        question_count: int = Form(5, alias="questionCount"),
        difficulty: str = Form("medium"),
        identity: Identity = Depends(get_current_identity),
        service: QuizGenerationService = Depends(get_generation_service),
    ) -> GeneratedQuestionSet:
        # 한도 + 1바이트까지만 읽어 초과 업로드를 통째로 버퍼링하지 않는다
        data = file.file.read(settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024 + 1)
        logger.info("AI 퀴즈 생성 요청(파일) user_id=%s filename=%s size=%d", identity.user_id, file.filename, len(data))
        return _run_generation(
            service.generate_from_document,
            data,
            filename=file.filename,
            content_type=file.content_type,
            question_count=question_count,
            difficulty=difficulty,
        )

    @app.post("/ai/explain", response_model=ExplainResponse, summary="정답 해설 생성")
    def ai_explain(
        body: ExplainRequest,
        identity: Identity = Depends(get_current_identity),
        service: QuizGenerationService = Depends(get_generation_service),
    ) -> ExplainResponse:
        try:
            explanation = service.explain(
                body.question_text,
                body.options,
                body.correct_index,
                body.user_answer,
            )
        except PromptBuildError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except GenerationUnavailableError as e:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
        except LLMCallError:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to generate explanation")
        return ExplainResponse(explanation=explanation)

    # ----- 풀이 -----

    @app.post(
        "/quizzes/{quiz_id}/attempts",
        response_model=AttemptResponse,
        status_code=status.HTTP_201_CREATED,
        summary="퀴즈 제출·채점",
    )
    def attempt_submit(
        quiz_id: int,
        body: AttemptRequest,
        identity: Identity = Depends(get_current_identity),
        session: Session = Depends(get_db_session),
    ) -> AttemptResponse:
        row = _load_viewable(session, quiz_id, identity)
        questions = [Question.model_validate(q) for q in row.questions]
        score = score_answers(questions, body.answers, settings.PASSING_PERCENTAGE)
        answers = [{"qIndex": i, "selectedIndex": a} for i, a in enumerate(body.answers[: len(questions)])]
        try:
            attempt = attempt_repo.insert(
                session,
                user_id=identity.user_id,
                quiz_id=quiz_id,
                answers=answers,
                score=score.correct,
                total=score.total,
            )
        except Exception:
            logger.exception("풀이 저장 실패 quiz_id=%s", quiz_id)
            raise HTTPException(status_code=500, detail="Failed to save attempt")
        results = []
        for i, q in enumerate(questions):
            picked = body.answers[i] if i < len(body.answers) else None
            results.append(
                AnswerResult(
                    q_index=i,
                    selected_index=picked,
                    correct_index=q.correct_index,
                    is_correct=picked == q.correct_index,
                )
            )
        return AttemptResponse(
            id=attempt.id,
            quiz_id=quiz_id,
            correct=score.correct,
            total=score.total,
            percentage=score.percentage,
            passed=score.passed,
            results=results,
        )

    @app.get("/attempts/me", response_model=AttemptHistoryResponse, summary="내 풀이 기록")
    def attempt_history(
        identity: Identity = Depends(get_current_identity),
        session: Session = Depends(get_db_session),
    ) -> AttemptHistoryResponse:
        rows = attempt_repo.list_by_user(session, identity.user_id)
        return AttemptHistoryResponse(
            attempts=[
                AttemptHistoryItem(
                    id=a.id,
                    quiz_id=q.id,
                    quiz_title=q.title,
                    score=a.score,
                    total=a.total,
                    created_at=a.created_at,
                )
                for a, q in rows
            ]
        )

    # ----- 관리자 -----

    @app.get("/admin/quizzes", response_model=AdminQuizListResponse, summary="전체 퀴즈 (관리자)")
    def admin_quizzes(
        _: Identity = Depends(require_admin),
        session: Session = Depends(get_db_session),
    ) -> AdminQuizListResponse:
        rows = quiz_repo.list_all_with_owner(session)
        return AdminQuizListResponse(
            quizzes=[
                AdminQuizItem(
                    id=q.id,
                    title=q.title,
                    description=q.description,
                    visibility=q.visibility,
                    tags=q.tags or [],
                    question_count=len(q.questions or []),
                    created_at=q.created_at,
                    owner_id=u.id,
                    owner_name=u.name,
                    owner_email=u.email,
                )
                for q, u in rows
            ],
            total=len(rows),
        )

    @app.get("/admin/users", response_model=AdminUserListResponse, summary="전체 사용자 (관리자)")
    def admin_users(
        _: Identity = Depends(require_admin),
        session: Session = Depends(get_db_session),
    ) -> AdminUserListResponse:
        rows = user_repo.list_with_quiz_counts(session)
        return AdminUserListResponse(
            users=[
                AdminUserItem(
                    id=u.id,
                    name=u.name,
                    email=u.email,
                    role=u.role,
                    created_at=u.created_at,
                    quiz_count=count,
                )
                for u, count in rows
            ],
            total=len(rows),
        )

    @app.get("/admin/stats", response_model=AdminStatsResponse, summary="사용 현황 집계 (관리자)")
    def admin_stats(
        _: Identity = Depends(require_admin),
        session: Session = Depends(get_db_session),
    ) -> AdminStatsResponse:
        by_visibility = quiz_repo.count_by_visibility(session)
        return AdminStatsResponse(
            users=user_repo.count(session),
            quizzes=sum(by_visibility.values()),
            public_quizzes=by_visibility.get("public", 0),
            private_quizzes=by_visibility.get("private", 0),
            attempts=attempt_repo.count(session),
        )

    return app


app = create_app()
