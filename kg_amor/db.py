from pathlib import Path
from sqlite3 import Connection as SQLite3Connection

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings


def _connect_args(db_url: str, timeout: float) -> dict:
    if db_url.startswith("sqlite"):
        # busy timeout bounds lock waits on the store
        return {"check_same_thread": False, "timeout": timeout}
    if db_url.startswith("postgresql"):
        return {"options": f"-c statement_timeout={int(timeout * 1000)}"}
    return {}


def make_engine(db_url: str, timeout: float = settings.store_timeout_seconds, echo: bool = False) -> Engine:
    if db_url.startswith("sqlite:///./"):
        Path(db_url.replace("sqlite:///", "")).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(db_url, connect_args=_connect_args(db_url, timeout), echo=echo)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, SQLite3Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = make_engine(settings.db_url, echo=settings.db_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
