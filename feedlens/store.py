"""
store.py
========
Database gateway for the service.

1) Creates the engine from ``config.DB_URL``.
2) Creates tables (once) based on the SQLModel classes in models.py.
3) Provides a helper to open a database Session (a unit of work/transaction).
"""

from sqlmodel import SQLModel, Session, create_engine

from .config import DB_URL

# check_same_thread=False lets FastAPI's threadpool share the SQLite engine
connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}

engine = create_engine(DB_URL, echo=False, connect_args=connect_args)


def init_db() -> None:
    """
    Create all tables for the models in models.py.
    Safe to call on every startup; it only creates missing tables.
    """
    from . import models  # noqa: F401  (import just to register models with SQLModel)

    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    """
    Open a database Session bound to our engine.

    Usage pattern:
      with get_session() as session:
          session.add(obj)
          session.commit()
    """
    return Session(engine)
