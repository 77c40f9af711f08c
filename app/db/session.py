"""
Storage client lifecycle.

The engine and session factory are built once per process by the application lifespan
(see main.py) and kept on ``app.state``; handlers receive a per-request Session through
the get_db dependency instead of touching a module-level client.
"""

import logging
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.errors import StorageError, WalletAuthError

logger = logging.getLogger(__name__)


def _connect_args(database_url: str, timeout: int) -> dict:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    if database_url.startswith("postgresql"):
        return {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    return {"connect_timeout": timeout}


def create_db_engine(
    database_url: str = settings.DATABASE_URL,
    timeout: int = settings.STORE_TIMEOUT_SECONDS,
) -> Engine:
    """Create the SQLAlchemy engine with every store round trip bounded by ``timeout`` seconds."""
    kwargs = {}
    if not database_url.startswith("sqlite"):
        kwargs = {"pool_pre_ping": True, "pool_recycle": 3600, "pool_timeout": timeout}
    return create_engine(database_url, connect_args=_connect_args(database_url, timeout), **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    # Create a configured "Session" class
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency that can be used in routes to get the session
def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()  # generate a new Session
    try:
        yield db
    except WalletAuthError:
        raise
    except SQLAlchemyError as e:
        logger.error("database error: %s", e)
        raise StorageError("Query data error") from e
    finally:
        db.close()
