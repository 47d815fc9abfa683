# agentdocs/db.py
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from agentdocs import monitoring

# Default dev DB; on Vercel api/index.py sets DATABASE_URL to /tmp before import
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agentdocs.db")


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def _make_session_factory(bind):
    # Store methods hand back plain dicts, so rows must stay readable after commit
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


engine = _make_engine(DATABASE_URL)
SessionLocal = _make_session_factory(engine)
Base = declarative_base()


def reconfigure(url: str):
    """Reconfigure the DB engine and session factory at runtime (for tests)."""
    global engine, SessionLocal
    engine = _make_engine(url)
    SessionLocal = _make_session_factory(engine)


def init_db():
    # import models lazily so Base metadata has every table
    import agentdocs.models as models  # noqa: F841
    Base.metadata.create_all(bind=engine)
    monitoring.logger.info("Catalog schema ready", extra={"database": engine.url.render_as_string(hide_password=True)})
