# watercan/db/get_db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from watercan.core import config


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Request handlers run in a threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO, future=True, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
