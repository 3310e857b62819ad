"""
CLI 테스트: 파일/stdin 입력, 출력 파일, 실패 시 종료 코드.
"""

import io
import json

import pytest

from app.main import main


def test_generate_from_text_file(tmp_path, capsys, generation_service, fake_llm, reply, long_content):
    notes = tmp_path / "notes.txt"
    notes.write_text(long_content, encoding="utf-8")
    fake_llm.queue(reply(3))

    main(["-i", str(notes), "-n", "3", "--difficulty", "hard"], service=generation_service)

    out = json.loads(capsys.readouterr().out)
    assert len(out["questions"]) == 3
    assert out["questions"][0]["correctIndex"] == 0
    assert out["metadata"]["requestedCount"] == 3
    assert out["metadata"]["difficulty"] == "hard"


def test_generate_from_stdin_to_output_file(tmp_path, monkeypatch, generation_service, long_content):
    monkeypatch.setattr("sys.stdin", io.StringIO(long_content))
    target = tmp_path / "quiz.json"

    main(["--stdin", "--output", str(target), "--pretty"], service=generation_service)

    out = json.loads(target.read_text(encoding="utf-8"))
    assert out["metadata"]["actualCount"] == 2


def test_missing_file_exits_with_error(tmp_path, capsys, generation_service):
    with pytest.raises(SystemExit) as exc_info:
        main(["-i", str(tmp_path / "nope.txt")], service=generation_service)
    assert exc_info.value.code == 1
    assert "입력 처리 실패" in capsys.readouterr().err


def test_no_input_exits_with_error(capsys, generation_service):
    with pytest.raises(SystemExit) as exc_info:
        main([], service=generation_service)
    assert exc_info.value.code == 1


def test_bad_model_reply_exits_with_error(tmp_path, capsys, generation_service, fake_llm, long_content):
    notes = tmp_path / "notes.md"
    notes.write_text(long_content, encoding="utf-8")
    fake_llm.queue("definitely not json")

    with pytest.raises(SystemExit) as exc_info:
        main(["-i", str(notes)], service=generation_service)
    assert exc_info.value.code == 1
    assert "퀴즈 생성 실패" in capsys.readouterr().err


def test_question_count_out_of_range_exits(tmp_path, generation_service, fake_llm, long_content):
    notes = tmp_path / "notes.txt"
    notes.write_text(long_content, encoding="utf-8")

    with pytest.raises(SystemExit):
        main(["-i", str(notes), "-n", "50"], service=generation_service)
    assert fake_llm.calls == []
