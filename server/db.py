from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


class Database:
    def __init__(self, url: str):
        self._engine = create_engine(url, **self._engine_options(url))
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @staticmethod
    def _engine_options(url: str) -> dict:
        if not url.startswith("sqlite"):
            return {"pool_pre_ping": True}
        options = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            # a single shared connection keeps the in-memory database alive
            options["poolclass"] = StaticPool
        return options

    def create_all(self):
        Base.metadata.create_all(self._engine)

    def drop_all(self):
        Base.metadata.drop_all(self._engine)

    def session(self) -> Generator[Session, None, None]:
        with self._session_factory() as session:
            yield session

    def new_session(self) -> Session:
        return self._session_factory()

    def ping(self):
        with self._engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def dispose(self):
        self._engine.dispose()
