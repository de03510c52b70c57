"""
SQLAlchemy engine and session. PostgreSQL in production, SQLite for local runs and tests.
Sync usage; every quiz and upload query is scoped by user_id.
"""
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from quizflow.config import settings

logger = logging.getLogger(__name__)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Engine for `url`. SQLite connections get foreign keys switched on so ON DELETE rules apply."""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, echo=echo)
    eng = create_engine(url, connect_args={"check_same_thread": False}, echo=echo)

    @event.listens_for(eng, "connect")
    def _sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return eng


engine = create_db_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables. Called at app startup and by tests against their own engine."""
    from quizflow.models import user, file_upload, quiz, usage_record  # noqa: F401  (register with Base)
    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.debug("Database tables ensured on %s", target.url.get_backend_name())


def get_db():
    """Dependency: yield a DB session, close after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
