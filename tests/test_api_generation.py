"""
API 테스트: AI 퀴즈 생성(텍스트/파일), 해설, 풀이 채점, 관리자 조회.
LLM은 conftest의 FakeLLMClient가 대신 응답한다.
"""

import json

import httpx
import pytest
from openai import APIConnectionError

from app.api.deps import get_generation_service
from app.core.config import settings
from app.services.extraction import ExtractionError
from app.services.quiz_generation import QuizGenerationService


def _create(client, headers, payload):
    resp = client.post("/quizzes", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["quiz"]


# ----- 생성 (텍스트) -----


def test_generate_from_fenced_reply(client, alice, auth_headers, fake_llm, reply, long_content):
    fake_llm.queue(reply(3, fenced=True))
    resp = client.post(
        "/quizzes/generate",
        json={"content": long_content, "questionCount": 3, "difficulty": "easy"},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert len(body["questions"]) == 3
    assert body["questions"][1]["correctIndex"] == 1
    assert body["metadata"]["requestedCount"] == 3
    assert body["metadata"]["actualCount"] == 3
    assert body["metadata"]["difficulty"] == "easy"
    assert body["metadata"]["model"] == "test-model"

    call = fake_llm.calls[0]
    assert call["model"] == "test-model"
    assert call["response_format"] == {"type": "json_object"}
    assert "EXACTLY 3 questions" in call["messages"][-1]["content"]


def test_generated_questions_are_not_saved(client, alice, auth_headers, long_content):
    resp = client.post("/quizzes/generate", json={"content": long_content}, headers=auth_headers(alice))
    assert resp.status_code == 200
    assert client.get("/quizzes", headers=auth_headers(alice)).json()["pagination"]["total"] == 0


def test_generated_questions_can_be_saved_as_quiz(client, alice, auth_headers, long_content):
    generated = client.post("/quizzes/generate", json={"content": long_content}, headers=auth_headers(alice)).json()
    quiz = _create(
        client,
        auth_headers(alice),
        {"title": "Photosynthesis", "questions": generated["questions"], "tags": ["biology"]},
    )
    assert quiz["questionCount"] == 2


def test_malformed_reply_is_bad_gateway(client, alice, auth_headers, fake_llm, long_content):
    fake_llm.queue("I'm sorry, I can't do that.")
    resp = client.post("/quizzes/generate", json={"content": long_content}, headers=auth_headers(alice))
    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["kind"] == "MalformedOutput"
    assert "details" not in detail


def test_malformed_reply_details_in_development(client, alice, auth_headers, fake_llm, long_content, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    fake_llm.queue("not json at all")
    resp = client.post("/quizzes/generate", json={"content": long_content}, headers=auth_headers(alice))
    assert resp.status_code == 502
    assert resp.json()["detail"]["details"] == "not json at all"


def test_invalid_generated_question_reports_index(client, alice, auth_headers, fake_llm, reply, long_content):
    payload = json.loads(reply(3))
    payload["questions"][2]["correctIndex"] = 7
    fake_llm.queue(json.dumps(payload))
    resp = client.post(
        "/quizzes/generate",
        json={"content": long_content, "questionCount": 3},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["kind"] == "InvalidQuestion"
    assert detail["index"] == 2


def test_missing_questions_field(client, alice, auth_headers, fake_llm, long_content):
    fake_llm.queue('{"quiz": []}')
    resp = client.post("/quizzes/generate", json={"content": long_content}, headers=auth_headers(alice))
    assert resp.status_code == 502
    assert resp.json()["detail"]["kind"] == "MissingQuestionsField"


def test_generate_requires_login_and_skips_model(client, fake_llm, long_content):
    resp = client.post("/quizzes/generate", json={"content": long_content})
    assert resp.status_code == 401
    assert fake_llm.calls == []


@pytest.mark.parametrize("count", [0, 21])
def test_question_count_out_of_range(client, alice, auth_headers, fake_llm, long_content, count):
    resp = client.post(
        "/quizzes/generate",
        json={"content": long_content, "questionCount": count},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 400
    assert "between 1 and 20" in resp.json()["detail"]
    assert fake_llm.calls == []


def test_short_content_rejected(client, alice, auth_headers, fake_llm):
    resp = client.post("/quizzes/generate", json={"content": "Too short."}, headers=auth_headers(alice))
    assert resp.status_code == 400
    assert fake_llm.calls == []


def test_invalid_difficulty_rejected(client, alice, auth_headers, fake_llm, long_content):
    resp = client.post(
        "/quizzes/generate",
        json={"content": long_content, "difficulty": "impossible"},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 400
    assert fake_llm.calls == []


def test_unconfigured_service_is_unavailable(client, alice, auth_headers, long_content, monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    client.app.dependency_overrides[get_generation_service] = lambda: QuizGenerationService()
    resp = client.post("/quizzes/generate", json={"content": long_content}, headers=auth_headers(alice))
    assert resp.status_code == 503


def test_model_call_failure_is_bad_gateway(client, alice, auth_headers, fake_llm, long_content):
    def _fail(**kwargs):
        raise APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))

    fake_llm.completions.create = _fail
    resp = client.post("/quizzes/generate", json={"content": long_content}, headers=auth_headers(alice))
    assert resp.status_code == 502
    assert resp.json()["detail"]["error"] == "Failed to generate quiz"


# ----- 생성 (파일) -----


def test_generate_from_text_upload(client, alice, auth_headers, fake_llm, reply, long_content):
    fake_llm.queue(reply(2))
    resp = client.post(
        "/quizzes/generate/upload",
        files={"file": ("notes.txt", long_content.encode("utf-8"), "text/plain")},
        data={"questionCount": "2", "difficulty": "hard"},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["metadata"]["requestedCount"] == 2
    assert body["metadata"]["difficulty"] == "hard"
    assert "Photosynthesis" in fake_llm.calls[0]["messages"][-1]["content"]


def test_upload_unsupported_type(client, alice, auth_headers, fake_llm):
    resp = client.post(
        "/quizzes/generate/upload",
        files={"file": ("slides.pptx", b"PK\x03\x04binary", "application/octet-stream")},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 400
    assert "Unsupported" in resp.json()["detail"]
    assert fake_llm.calls == []


def test_upload_over_size_limit(client, alice, auth_headers, fake_llm, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 1)
    resp = client.post(
        "/quizzes/generate/upload",
        files={"file": ("notes.txt", b"a" * (3 * 1024 * 1024), "text/plain")},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 400
    assert "too large" in resp.json()["detail"]
    assert fake_llm.calls == []


def test_upload_read_stops_after_limit(client, alice, auth_headers, monkeypatch):
    """업로드는 한도 + 1바이트까지만 읽는다."""
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 1)
    seen = []

    def _record(self, data, **kwargs):
        seen.append(len(data))
        raise ExtractionError("File is too large. Maximum size is 1 MB")

    monkeypatch.setattr(QuizGenerationService, "generate_from_document", _record)
    resp = client.post(
        "/quizzes/generate/upload",
        files={"file": ("notes.txt", b"a" * (3 * 1024 * 1024), "text/plain")},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 400
    assert seen == [1024 * 1024 + 1]


def test_upload_document_too_short(client, alice, auth_headers, fake_llm):
    resp = client.post(
        "/quizzes/generate/upload",
        files={"file": ("notes.txt", b"tiny", "text/plain")},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 400
    assert fake_llm.calls == []


# ----- 해설 -----


def test_explain_answer(client, alice, auth_headers, fake_llm):
    fake_llm.queue("  4 is correct because 2+2 equals 4.  ")
    resp = client.post(
        "/ai/explain",
        json={"questionText": "What is 2+2?", "options": ["3", "4", "5"], "correctIndex": 1, "userAnswer": 0},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 200
    assert resp.json()["explanation"] == "4 is correct because 2+2 equals 4."
    call = fake_llm.calls[0]
    assert "response_format" not in call
    assert 'why "3" is incorrect' in call["messages"][0]["content"]


def test_explain_bad_index(client, alice, auth_headers, fake_llm):
    resp = client.post(
        "/ai/explain",
        json={"questionText": "What is 2+2?", "options": ["3", "4"], "correctIndex": 5},
        headers=auth_headers(alice),
    )
    assert resp.status_code == 400
    assert fake_llm.calls == []


# ----- 풀이 -----


def test_submit_attempt_and_history(client, alice, bob, auth_headers, sample_quiz_payload):
    payload = dict(sample_quiz_payload)
    payload["questions"] = sample_quiz_payload["questions"] + [
        {"text": "Which keyword declares a constant?", "options": ["var", "let", "const"], "correctIndex": 2},
        {"text": "Which value is falsy?", "options": ["0", "'0'", "[]"], "correctIndex": 0},
    ]
    quiz = _create(client, auth_headers(alice), payload)

    resp = client.post(f"/quizzes/{quiz['id']}/attempts", json={"answers": [1, 2, None]}, headers=auth_headers(bob))
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert (body["correct"], body["total"], body["percentage"], body["passed"]) == (2, 3, 67, False)
    assert [r["isCorrect"] for r in body["results"]] == [True, True, False]
    assert body["results"][2]["correctIndex"] == 0

    history = client.get("/attempts/me", headers=auth_headers(bob)).json()["attempts"]
    assert len(history) == 1
    assert history[0]["quizTitle"] == "JavaScript Basics"
    assert history[0]["score"] == 2
    assert client.get("/attempts/me", headers=auth_headers(alice)).json()["attempts"] == []


def test_attempt_on_hidden_quiz_is_404(client, alice, bob, auth_headers, sample_quiz_payload):
    quiz = _create(client, auth_headers(alice), dict(sample_quiz_payload, visibility="private"))
    resp = client.post(f"/quizzes/{quiz['id']}/attempts", json={"answers": [1]}, headers=auth_headers(bob))
    assert resp.status_code == 404


def test_attempt_requires_login(client, alice, auth_headers, sample_quiz_payload):
    quiz = _create(client, auth_headers(alice), sample_quiz_payload)
    assert client.post(f"/quizzes/{quiz['id']}/attempts", json={"answers": [1]}).status_code == 401


# ----- 관리자 -----


@pytest.mark.parametrize("path", ["/admin/quizzes", "/admin/users", "/admin/stats"])
def test_admin_endpoints_forbidden_for_users(client, alice, auth_headers, path):
    assert client.get(path).status_code == 401
    resp = client.get(path, headers=auth_headers(alice))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Forbidden - Admin access required"


def test_admin_views(client, alice, bob, admin, auth_headers, sample_quiz_payload):
    quiz = _create(client, auth_headers(alice), dict(sample_quiz_payload, visibility="private"))
    _create(client, auth_headers(bob), dict(sample_quiz_payload, title="Bob's quiz"))
    client.post(f"/quizzes/{quiz['id']}/attempts", json={"answers": [1]}, headers=auth_headers(alice))

    quizzes = client.get("/admin/quizzes", headers=auth_headers(admin)).json()
    assert quizzes["total"] == 2
    assert {q["ownerEmail"] for q in quizzes["quizzes"]} == {"alice@example.com", "bob@example.com"}

    users = client.get("/admin/users", headers=auth_headers(admin)).json()
    counts = {u["email"]: u["quizCount"] for u in users["users"]}
    assert counts == {"alice@example.com": 1, "bob@example.com": 1, "admin@example.com": 0}

    stats = client.get("/admin/stats", headers=auth_headers(admin)).json()
    assert stats == {"users": 3, "quizzes": 2, "publicQuizzes": 1, "privateQuizzes": 1, "attempts": 1}
