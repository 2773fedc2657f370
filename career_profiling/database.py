"""
Database engine, session factory and declarative base
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
import logging

from career_profiling.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _create_engine(url: str):
    # Render/Heroku hand out postgres:// URLs
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})
        
        # ON DELETE CASCADE is only honoured with foreign keys switched on
        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
        
        return sqlite_engine
    
    return create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=0)


engine = _create_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency yielding one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables"""
    # Import models so every table is registered on Base.metadata
    from career_profiling import models  # noqa: F401
    
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
