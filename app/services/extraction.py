"""
업로드 문서 → 텍스트 (퀴즈 생성 입력용).
PDF는 pypdf, 텍스트 파일은 UTF-8 디코딩. 실패하면 ExtractionError (재시도·부분 결과 없음).
"""

import io
import logging
from pathlib import Path

from pypdf import PdfReader

from app.core.config import settings

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".md", ".markdown"}


class ExtractionError(ValueError):
    """문서를 텍스트로 바꿀 수 없음 (형식 미지원, 손상, 빈 문서)."""


def _detect_kind(data: bytes, filename: str | None, content_type: str | None) -> str | None:
    suffix = Path(filename or "").suffix.lower()
    content_type = (content_type or "").split(";")[0].strip().lower()
    if data.startswith(b"%PDF") or suffix == ".pdf" or content_type == "application/pdf":
        return "pdf"
    if suffix in TEXT_SUFFIXES or content_type.startswith("text/"):
        return "text"
    return None


def _extract_pdf(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [(page.extract_text() or "").replace("\x00", "") for page in reader.pages]
    except Exception as exc:
        logger.warning("PDF 텍스트 추출 실패: %s", exc)
        raise ExtractionError("Could not read the PDF document") from exc
    logger.info("PDF 텍스트 추출 완료 pages=%d", len(pages))
    return "\n".join(p for p in pages if p.strip())


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExtractionError("Text file must be UTF-8 encoded") from exc


def extract_text(data: bytes, filename: str | None = None, content_type: str | None = None) -> str:
    """업로드 바이트에서 텍스트 추출."""
    if not data:
        raise ExtractionError("Uploaded file is empty")
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(data) > max_bytes:
        raise ExtractionError(f"File is too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB} MB")

    kind = _detect_kind(data, filename, content_type)
    if kind == "pdf":
        text = _extract_pdf(data)
    elif kind == "text":
        text = _decode_text(data)
    else:
        raise ExtractionError("Unsupported file type. Upload a PDF or a text file")

    text = text.strip()
    if not text:
        raise ExtractionError("No text could be extracted from the document")
    return text
