"""Database session management with connection pooling"""

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from sofloan_gateway.config import settings

# Recycle hourly so idle connections are not dropped by the server first
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Request-scoped session; routes commit, this only closes"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
