from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from aiassess.core.config import settings


def _connect_args(url: str) -> dict:
    # FastAPI runs sync routes in a threadpool.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    connect_args=_connect_args(settings.SQLALCHEMY_DATABASE_URI),
    pool_pre_ping=True,
)


def init_db(bind: Engine = engine) -> None:
    # Importing the models registers every table on SQLModel.metadata.
    from aiassess import models  # noqa: F401

    SQLModel.metadata.create_all(bind)
