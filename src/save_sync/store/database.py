"""Database engine and session management."""

import logging
from pathlib import Path
from typing import Tuple

from sqlalchemy import Engine, create_engine as sa_create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

logger = logging.getLogger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(db_location: Path, echo: bool = False) -> Tuple[Engine, sessionmaker[Session]]:
    """Create the pooled SQLite engine and a session factory.

    The schema is created on first use.

    Returns (engine, session_factory) tuple.
    """
    db_location = Path(db_location)
    db_location.parent.mkdir(parents=True, exist_ok=True)

    engine = sa_create_engine(f"sqlite:///{db_location}", echo=echo)
    event.listen(engine, "connect", _enable_foreign_keys)
    Base.metadata.create_all(engine)
    logger.debug(f"Opened metadata database at {db_location}")

    session_factory = sessionmaker(engine, expire_on_commit=False)
    return engine, session_factory
