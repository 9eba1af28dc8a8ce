from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, List, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

from .config import settings

logger = logging.getLogger(__name__)

# Statements run on every new DBAPI connection, per backend.
# SQLite: WAL so draws can read during a roster replace; FKs must be switched on
# per connection; busy_timeout makes a concurrent writer wait instead of failing.
_CONNECT_STATEMENTS: Dict[str, List[str]] = {
    "sqlite": [
        "PRAGMA journal_mode=WAL",
        "PRAGMA synchronous=NORMAL",
        "PRAGMA foreign_keys=ON",
        "PRAGMA busy_timeout=5000",
    ],
    "postgresql": [
        "SET statement_timeout = 30000",
    ],
}


def _sqlite_file(database_url: str) -> Optional[Path]:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return None
    if not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def _install_connect_hook(engine: Engine, statements: List[str]) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        try:
            for stmt in statements:
                cursor.execute(stmt)
        finally:
            cursor.close()


def build_engine(database_url: str) -> Engine:
    """
    Engine for any supported URL.

    SQLite files get their parent folder created and check_same_thread off
    (FastAPI serves sync routes from a threadpool).
    """
    backend = make_url(database_url).get_backend_name()

    db_file = _sqlite_file(database_url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    connect_args = {"check_same_thread": False} if backend == "sqlite" else {}
    engine = create_engine(database_url, echo=False, connect_args=connect_args, pool_pre_ping=True)

    statements = _CONNECT_STATEMENTS.get(backend)
    if statements:
        _install_connect_hook(engine, statements)

    return engine


# Process-wide engine (DATABASE_URL, else DB_PATH)
engine: Engine = build_engine(settings.resolved_database_url)


def register_models() -> None:
    """Import the table models so SQLModel.metadata has all three tables."""
    from .models import Assignment, OrganizationSettings, Participant  # noqa: F401


def init_db(create_tables: bool = True, bind: Optional[Engine] = None) -> None:
    """
    create_all is additive only; existing tables are left as they are.
    """
    register_models()
    if create_tables:
        target = bind or engine
        SQLModel.metadata.create_all(target)
        logger.info("Database ready (%s)", target.url.get_backend_name())


def ping(session: Session) -> bool:
    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database ping failed")
        return False
    return True


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope(bind: Optional[Engine] = None) -> Generator[Session, None, None]:
    """
    Session for scripts: commits on success, rolls back on error.

        with session_scope() as db:
            replace_roster(db, rows)
    """
    session = Session(bind or engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
