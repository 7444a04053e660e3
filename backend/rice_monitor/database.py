from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        sqlite_args = {"check_same_thread": False, "timeout": 30}
    else:
        sqlite_args = {}
    return create_engine(database_url, connect_args=sqlite_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
