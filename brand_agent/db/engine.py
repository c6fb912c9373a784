"""SQLite engine construction for the document store."""

import os
from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

# Used when neither a path nor DATABASE_URL is given
DEFAULT_DB_PATH = Path.home() / ".brand_agent" / "brand_agent.db"


def get_database_url(db_path: Path | str | None = None) -> str:
    """
    Get the SQLite database URL.

    Args:
        db_path: Optional path to the database file. If None, uses
                 DATABASE_URL env var or default path.

    Returns:
        SQLite connection URL.
    """
    if db_path is not None:
        path = Path(db_path)
    elif os.environ.get("DATABASE_URL"):
        url = os.environ["DATABASE_URL"]
        if url.startswith("sqlite"):
            return url
        path = Path(url)
    else:
        path = DEFAULT_DB_PATH

    path.expanduser().parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path.expanduser()}"


def create_db_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """
    Create an engine for one database file.

    Connections may be used from worker threads, so SQLite's same-thread
    check is disabled.
    """
    return create_engine(
        get_database_url(db_path),
        echo=echo,
        connect_args={"check_same_thread": False},
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables on ``engine``."""
    from brand_agent.db.models import Base

    Base.metadata.create_all(bind=engine)
