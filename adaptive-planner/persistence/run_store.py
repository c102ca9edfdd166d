"""PostgreSQL/SQLite run history CRUD operations.

Only run bookkeeping is stored; pipeline state itself is discarded at the
end of every run.
"""

import logging
import os
from datetime import datetime, timezone

from sqlalchemy import create_engine, desc
from sqlalchemy.orm import sessionmaker

from persistence.models import Base, Run

logger = logging.getLogger(__name__)

_engine = None
_Session = None


def _get_database_url() -> str:
    """Return DATABASE_URL or fall back to local SQLite."""
    return os.getenv("DATABASE_URL", "sqlite:///runs.db")


def init_db(url: str | None = None) -> None:
    """Create tables if they don't exist and initialize the session factory."""
    global _engine, _Session
    url = url or _get_database_url()
    _engine = create_engine(url, echo=False)
    Base.metadata.create_all(_engine)
    _Session = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info(f"[run_store] Database initialized ({url.split('@')[-1] if '@' in url else url})")


def _session():
    if _Session is None:
        init_db()
    return _Session()


def create_run(run_id: str, prompt: str) -> Run:
    """Insert a new run record in ``running`` status."""
    run = Run(id=run_id, prompt=prompt, status="running")
    session = _session()
    try:
        session.add(run)
        session.commit()
        session.refresh(run)
        return run
    finally:
        session.close()


def update_run(run_id: str, outcome: str, state: dict) -> None:
    """Record the terminal outcome and bookkeeping of a finished run."""
    session = _session()
    try:
        run = session.query(Run).filter_by(id=run_id).first()
        if not run:
            logger.warning(f"[run_store] Unknown run {run_id}, nothing updated")
            return

        run.status = outcome
        run.completed_at = datetime.now(timezone.utc)
        run.category = state.get("project_category")
        run.complexity = state.get("project_complexity") or state.get("default_complexity")
        run.section_titles = [s["title"] for s in state.get("sections") or []]
        run.sections_generated = len(state.get("plan_sections") or [])
        run.salvaged = bool(state.get("salvaged"))
        run.total_tokens = state.get("total_tokens_used", 0)
        run.retry_count = state.get("retry_count", 0)
        run.step_count = state.get("step_count", 0)
        run.model_used = state.get("model_used") or None
        run.error = state.get("last_error") or None

        session.commit()
    finally:
        session.close()


def get_run(run_id: str) -> Run | None:
    session = _session()
    try:
        return session.query(Run).filter_by(id=run_id).first()
    finally:
        session.close()


def list_runs(status: str | None = None, limit: int = 20) -> list[Run]:
    """List recent runs, optionally filtered by outcome."""
    session = _session()
    try:
        query = session.query(Run)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(desc(Run.created_at)).limit(limit).all()
    finally:
        session.close()
