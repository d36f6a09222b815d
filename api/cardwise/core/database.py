from sqlmodel import SQLModel, Session, create_engine, select
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from cardwise.core.config import settings
import logging
import sqlite3

logger = logging.getLogger(__name__)


def normalize_database_url(url: str) -> str:
    """SQLAlchemy prefers postgresql:// over postgres://."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _configure_sqlite_connection(dbapi_connection, _connection_record):
    """Enforce foreign keys and make lower() Unicode-aware for SQLite connections."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return

    # The built-in lower() only folds ASCII; search and duplicate checks need full case folding
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)

    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON;")
    finally:
        cursor.close()


def build_engine(db_url: str):
    """Create a database engine suited to the backing store."""
    db_url = normalize_database_url(db_url)

    if db_url.startswith("sqlite"):
        # SQLite connections are shared across FastAPI's worker threads
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        sqlite_engine = create_engine(db_url, echo=False, **kwargs)
        event.listen(sqlite_engine, "connect", _configure_sqlite_connection)
        return sqlite_engine

    return create_engine(
        db_url,
        echo=False,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        pool_timeout=10,
    )


db_url = normalize_database_url(settings.database_url)
logger.info(f"Connecting to database: {db_url[:20]}...")  # Log partial URL for debugging

engine = build_engine(db_url)


def seed_system_labels(bind=None):
    """Insert the built-in labels that are missing."""
    from cardwise.models.label import LABEL_TYPE_SYSTEM, SYSTEM_LABELS, Label

    with Session(bind if bind is not None else engine) as session:
        existing = set(
            session.exec(select(Label.name).where(Label.type == LABEL_TYPE_SYSTEM)).all()
        )
        missing = [values for values in SYSTEM_LABELS if values["name"] not in existing]
        for values in missing:
            session.add(Label(type=LABEL_TYPE_SYSTEM, user_id=None, **values))
        if missing:
            session.commit()
            logger.info(f"Created system labels: {', '.join(v['name'] for v in missing)}")


def init_db(bind=None):
    """Initialize database tables and the built-in labels."""
    # Import models so they register with SQLModel metadata
    from cardwise.models import models  # noqa: F401

    SQLModel.metadata.create_all(bind if bind is not None else engine)
    seed_system_labels(bind)
