from contextlib import contextmanager
from typing import Callable, Generator, Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from ..config import get_settings

settings = get_settings()

if settings.database_url.startswith("sqlite"):
    engine = create_engine(
        settings.database_url,
        echo=settings.debug,
        connect_args={"check_same_thread": False}
    )
else:
    engine = create_engine(
        settings.database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
        echo=settings.debug
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def job_session(session_factory: Optional[Callable[[], Session]] = None) -> Iterator[Session]:
    """Short-lived session for scheduler jobs and batch steps, outside a request."""
    db = (session_factory or SessionLocal)()
    try:
        yield db
    finally:
        db.close()


def database_backend() -> str:
    """Dialect name of the configured database, e.g. 'postgresql' or 'sqlite'."""
    return engine.dialect.name


def ping(db: Session) -> None:
    """Round trip to the database; raises SQLAlchemyError when unreachable."""
    db.execute(text("SELECT 1"))


def create_tables():
    # Articles, reactions, lifecycle log, stocks and announcements
    from .. import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
