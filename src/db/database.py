from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config.settings import database_settings


def get_engine(db_url: str = database_settings.url, echo: bool = database_settings.echo) -> Engine:
    """Creates the synchronous SQLAlchemy engine."""
    connect_args = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync endpoints in a threadpool
        connect_args["check_same_thread"] = False
    return create_engine(db_url, echo=echo, pool_pre_ping=True, connect_args=connect_args)


engine = get_engine()

# Create a configured "Session" class
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
