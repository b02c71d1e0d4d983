import importlib
import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()

log = logging.getLogger(__name__)

# imported before create_all so the metadata knows every table
MODEL_MODULES = [
    "catalogue.models.category",
    "catalogue.models.product",
    "catalogue.models.variant",
]


def _enable_sqlite_savepoints(engine) -> None:
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; emit it ourselves
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Database:
    """
    Explicit store handle: one engine plus its session factory.

    The application builds one of these at startup and keeps it on
    ``app.state.db``; tests build their own against a throwaway SQLite file,
    so no two test runs share state.
    """

    def __init__(self, url: str, echo: bool = False):
        connect_args = {}
        if url.startswith("sqlite"):
            # sessions are opened and closed on different threadpool workers
            connect_args["check_same_thread"] = False
        self.url = url
        self.engine = create_engine(url, future=True, echo=echo, connect_args=connect_args)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        if url.startswith("sqlite"):
            _enable_sqlite_savepoints(self.engine)

    def init_db(self, reset: bool = False) -> None:
        """
        Create the schema.

        With ``reset`` the existing tables are dropped first.
        """
        for mod in MODEL_MODULES:
            importlib.import_module(mod)

        if reset:
            log.info("Resetting database schema at %s", self.url)
            Base.metadata.drop_all(bind=self.engine)
        Base.metadata.create_all(bind=self.engine)
        log.info("Database initialized (%d tables)", len(Base.metadata.tables))

    def session(self) -> Session:
        return self.SessionLocal()

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
