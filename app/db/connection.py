"""
SQLModel 엔진·세션 (PostgreSQL).
테이블 생성은 앱 시작 시 init_db() 한 번만.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings
from app.db.models import Attempt, Quiz, QuizTag, User  # noqa: F401 - 테이블 등록

logger = logging.getLogger(__name__)


def create_db_engine(url: str, **kwargs) -> Engine:
    # postgresql:// → postgresql+psycopg:// (psycopg3 드라이버)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return create_engine(url, echo=False, **kwargs)


engine = create_db_engine(settings.DATABASE_URL, pool_pre_ping=True)


def init_db(bind: Engine | None = None) -> None:
    """테이블이 없으면 생성."""
    target = bind or engine
    SQLModel.metadata.create_all(target)
    logger.info("DB 테이블 준비 완료 url=%s", target.url.render_as_string(hide_password=True))


def dispose_db(bind: Engine | None = None) -> None:
    (bind or engine).dispose()


@contextmanager
def get_session(bind: Engine | None = None) -> Generator[Session, None, None]:
    with Session(bind or engine) as session:
        yield session
