"""
Database session management - SQLAlchemy engine and session factory.
Provides the get_db dependency used by the auth and user routers.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings

# ---------------------------------------------------------------------------
# DATABASE ENGINE
# ---------------------------------------------------------------------------
# pool_pre_ping: test pooled connections before use so a restarted
# Postgres does not surface as a failed login.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# ---------------------------------------------------------------------------
# SESSION FACTORY
# ---------------------------------------------------------------------------
# Commits are explicit (db.commit()) and flushes happen on our schedule.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    FastAPI dependency that yields one session per request.

    Usage in a route:
        @router.get("/me")
        def read_me(db: Session = Depends(get_db)):
            ...

    The session is always closed, even when the route raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
