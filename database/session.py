# database/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Base class for our ORM models
Base = declarative_base()


def build_engine(database_url: str):
    """
    Creates the SQLAlchemy engine for the configured database.
    In-memory SQLite (tests, local runs) needs one shared connection across threads.
    """
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    # pool_pre_ping drops connections the server closed while the worker was idle
    return create_engine(database_url, echo=False, pool_pre_ping=True)


def build_session_factory(engine):
    # Records outlive their session: routes and background jobs read them after commit
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine):
    import database.models  # noqa: F401  (registers tables on Base.metadata)
    Base.metadata.create_all(bind=engine)
