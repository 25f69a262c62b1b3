"""
Database Configuration
Engine, session factory and request-scoped session dependency
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from fund_approval.config.settings import settings


def build_engine(url: str):
    """
    Create a SQLAlchemy engine for the given URL

    Args:
        url: Database URL

    Returns:
        Engine: Configured engine
    """
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Yield one session per inbound request (one unit of work)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
