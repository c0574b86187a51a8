import os
import pathlib

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.models import Base

ACCOUNT_ID = "google-oauth2|1001"
OTHER_ACCOUNT_ID = "google-oauth2|2002"


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works under pysqlite.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn):
    conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session")
def database_url():
    return os.getenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")


@pytest.fixture(scope="session")
def engine(database_url):
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(engine, "connect", _configure_sqlite_connection)
        event.listen(engine, "begin", _begin_sqlite_transaction)
        Base.metadata.create_all(bind=engine)
    else:
        engine = create_engine(database_url, future=True)
        Base.metadata.drop_all(bind=engine)

        alembic_cfg = Config(str(pathlib.Path(__file__).resolve().parent.parent / "alembic.ini"))
        alembic_cfg.set_main_option("sqlalchemy.url", database_url)
        command.upgrade(alembic_cfg, "head")

    yield engine
    engine.dispose()


@pytest.fixture
def connection(engine):
    connection = engine.connect()
    transaction = connection.begin()

    yield connection

    transaction.rollback()
    connection.close()


@pytest.fixture
def db_session(connection):
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()


@pytest.fixture
def session_factory(connection):
    return sessionmaker(
        bind=connection,
        expire_on_commit=False,
        class_=Session,
        join_transaction_mode="create_savepoint",
    )


@pytest.fixture
def account_id():
    return ACCOUNT_ID


@pytest.fixture
def other_account_id():
    return OTHER_ACCOUNT_ID


@pytest.fixture
def anyio_backend():
    return "asyncio"
