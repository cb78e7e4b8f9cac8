import os

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from backend.app.config import get_settings

DATABASE_URL = get_settings().database_url


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # make sure the folder of a file-backed database exists
        database = make_url(url).database
        if database and database != ":memory:":
            folder = os.path.dirname(database)
            if folder:
                os.makedirs(folder, exist_ok=True)
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


# Create engine and session
engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create all tables on ``bind`` (the application engine by default)."""
    # models register themselves on Base when imported
    from backend.app.models.transaction_model import Transaction  # noqa: F401
    from backend.app.models.user_model import AuthSession, User  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
