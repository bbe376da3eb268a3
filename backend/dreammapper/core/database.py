"""
Database configuration and session management
"""
import logging
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from dreammapper.core.config import get_settings
from dreammapper.core.logging_config import LoggingConfig

# Lazy initialization - don't create engine at module level
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None

# Base class for models (can be created immediately)
Base = declarative_base()


def _enable_sqlite_foreign_keys(engine: Engine):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection"""

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine with the connect args each backend needs"""
    is_sqlite = database_url.startswith("sqlite")
    connect_args = kwargs.pop("connect_args", None)
    if connect_args is None:
        # FastAPI runs sync dependencies in a threadpool
        connect_args = {"check_same_thread": False, "timeout": 5} if is_sqlite else {"connect_timeout": 5}

    engine = create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=not is_sqlite,
        connect_args=connect_args,
        **kwargs
    )
    if is_sqlite:
        _enable_sqlite_foreign_keys(engine)
    return engine


def get_engine() -> Engine:
    """Get or create database engine (lazy initialization)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        LoggingConfig.configure()

        _engine = build_engine(settings.database_url, echo=settings.log_sqlalchemy)

        sqlalchemy_logger = logging.getLogger("sqlalchemy.engine")
        if not settings.log_sqlalchemy:
            sqlalchemy_logger.setLevel(logging.WARNING)
            sqlalchemy_logger.propagate = False

    return _engine


def get_session_local() -> sessionmaker:
    """Get or create session factory (lazy initialization)"""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def init_db(engine: Optional[Engine] = None):
    """Create all tables registered on Base"""
    import dreammapper.models.dream  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
