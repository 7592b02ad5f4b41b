# src/bag_planner/db/__init__.py
from __future__ import annotations
import os
import time
import logging
import contextvars
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

# ---- Settings ---------------------------------------------------------------
# DATABASE_URL  where batches and runs are stored (sqlite file in cwd by default)
# DB_LOG        off | summary | sql | full
# SQL_ECHO      1 to turn on SQLAlchemy's own echo
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bag_planner.db")

DB_LOG = os.getenv("DB_LOG", "off").strip().lower()
_log_summary = DB_LOG in ("summary", "full")
_log_statements = DB_LOG in ("sql", "full")
_log_errors = DB_LOG != "off"

_logger = logging.getLogger("bag_planner.sql")
if _log_errors:
    _logger.setLevel(logging.INFO)

# request id from the API middleware, "-" outside a request
_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


def set_request_id(rid: str) -> None:
    _request_id.set(str(rid))


def _trim(params):
    if params is None:
        return None
    if isinstance(params, dict):
        return {k: str(v)[:120] for k, v in params.items()}
    if isinstance(params, (list, tuple)):
        return [str(v)[:120] for v in params]
    return str(params)[:120]


def _install_query_log(eng: Engine) -> None:
    if not _log_errors:
        return

    @event.listens_for(eng, "before_cursor_execute")
    def _before(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("_t0", []).append(time.perf_counter())
        if _log_statements:
            _logger.info("[%s] SQL: %s | params=%s", _request_id.get(), statement, _trim(parameters))

    @event.listens_for(eng, "after_cursor_execute")
    def _after(conn, cursor, statement, parameters, context, executemany):
        started = conn.info.get("_t0") or []
        t0 = started.pop() if started else None
        if _log_summary:
            verb = statement.lstrip().split(None, 1)[0].upper() if statement else "SQL"
            ms = (time.perf_counter() - t0) * 1000 if t0 else 0.0
            _logger.info("[%s] %s rows=%s ms=%.2f", _request_id.get(), verb, getattr(cursor, "rowcount", None), ms)

    @event.listens_for(eng, "handle_error")
    def _on_error(ctx):  # pragma: no cover
        _logger.warning(
            "[%s] DB-ERROR: %s | stmt=%s | params=%s",
            _request_id.get(), ctx.original_exception, ctx.statement, _trim(ctx.parameters),
        )


def make_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """Engine with sqlite foreign keys on and DB_LOG query logging attached."""
    is_sqlite = url.startswith("sqlite")
    eng = create_engine(
        url,
        future=True,
        echo=os.getenv("SQL_ECHO", "0") == "1",
        # sessions are used from FastAPI's threadpool
        connect_args={"check_same_thread": False, "timeout": 60} if is_sqlite else {},
        pool_pre_ping=True,
        **kwargs,
    )
    if is_sqlite:
        @event.listens_for(eng, "connect")
        def _fk_on(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()
    _install_query_log(eng)
    return eng


# ---- Core objects ------------------------------------------------------------
engine: Engine = make_engine()

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=Session)

Base = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables (models are imported here so they register on Base)."""
    from . import models  # noqa: F401  # pylint: disable=unused-import

    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success, roll back on error; used by the CLI."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
