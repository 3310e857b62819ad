"""
퀴즈 생성 CLI: 텍스트/PDF 파일(또는 표준 입력)로 객관식 문항을 생성해 JSON으로 출력.

사용 예:
  python -m app.main -i notes.pdf --num-questions 5 --difficulty hard --pretty
  cat notes.txt | python -m app.main --stdin -n 3
로그는 stderr, JSON 결과는 stdout으로 출력된다.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from app.quiz.interpreter import GenerationError
from app.schema.quiz import DIFFICULTIES, GeneratedQuestionSet
from app.services.quiz_generation import (
    GenerationUnavailableError,
    LLMCallError,
    QuizGenerationService,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="텍스트/PDF 내용으로 객관식 퀴즈를 생성합니다.")
    parser.add_argument("-i", "--input", help="입력 파일 경로 (.pdf, .txt, .md)")
    parser.add_argument("--stdin", action="store_true", help="표준 입력에서 텍스트 읽기")
    parser.add_argument("--output", help="결과 JSON 저장 경로 (없으면 stdout)")
    parser.add_argument("-n", "--num-questions", type=int, default=5, help="생성할 문항 수 (1~20, 기본 5)")
    parser.add_argument("--difficulty", choices=list(DIFFICULTIES), default="medium", help="난이도")
    parser.add_argument("--pretty", action="store_true", help="예쁘게 출력")
    return parser


def run(args: argparse.Namespace, service: QuizGenerationService) -> GeneratedQuestionSet:
    if args.stdin:
        text = sys.stdin.read()
        if not text.strip():
            raise ValueError("stdin이 비어 있습니다.")
        return service.generate(text, args.num_questions, args.difficulty)

    if not args.input:
        raise ValueError("--input 또는 --stdin 중 하나는 필요합니다.")
    path = Path(args.input).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"파일을 찾을 수 없습니다: {path}")
    return service.generate_from_document(
        path.read_bytes(),
        filename=path.name,
        question_count=args.num_questions,
        difficulty=args.difficulty,
    )


def main(argv: list[str] | None = None, service: QuizGenerationService | None = None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    args = build_parser().parse_args(argv)

    try:
        result = run(args, service or QuizGenerationService())
    except GenerationError as exc:
        logger.error("생성 결과 해석 실패 kind=%s index=%s", exc.kind.value, exc.index)
        print(f"퀴즈 생성 실패: {exc}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, FileNotFoundError, GenerationUnavailableError, LLMCallError) as exc:
        print(f"입력 처리 실패: {exc}", file=sys.stderr)
        sys.exit(1)

    output = json.dumps(
        result.model_dump(mode="json", by_alias=True),
        ensure_ascii=False,
        indent=2 if args.pretty else None,
    )
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
    else:
        print(output)


if __name__ == "__main__":
    main()
