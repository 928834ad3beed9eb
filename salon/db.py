# salon/db.py

from sqlmodel import SQLModel, create_engine, Session

from salon.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}  # required for SQLite + FastAPI
    return {}


# Engine = connection to the database
engine = create_engine(
    settings.database_url,
    echo=False,          # set to True to see SQL
    connect_args=_connect_args(settings.database_url),
)


def create_db_and_tables(bind=None):
    # models must be imported so their tables are registered on the metadata
    from salon import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
