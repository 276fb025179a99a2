from typing import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from ledger_app.config import Settings, get_settings


def build_engine(settings: Settings) -> Engine:
    """
    Engine for the configured store.

    PostgreSQL runs at READ COMMITTED; the posting engine takes explicit row
    locks for everything that must serialize. SQLite (tests, local runs) gets
    foreign keys switched on and no pool sizing.
    """
    if settings.database_url.startswith("sqlite"):
        engine = create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        isolation_level="READ COMMITTED",
    )


engine = build_engine(get_settings())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database sessions. Uncommitted work is rolled back on close."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
