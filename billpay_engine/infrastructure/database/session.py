"""Ledger store engine and one session per request"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from billpay_engine.config import settings


def engine_options(database_url: str) -> dict:
    """Keyword arguments for `create_engine` suited to the backend"""
    if make_url(database_url).get_backend_name() == "sqlite":
        # Requests run on a thread pool, the session may move between threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 3600}


engine = create_engine(settings.database_url, **engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Session for one request; endpoints commit or roll back themselves"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
