from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.errors import ServiceError, StoreError
from app.models import Base
from app.utils.logger import logger


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    if not url.startswith('sqlite'):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    kwargs: dict = {'echo': echo, 'connect_args': {'check_same_thread': False}}
    if url in {'sqlite://', 'sqlite:///:memory:', 'sqlite+pysqlite://', 'sqlite+pysqlite:///:memory:'}:
        kwargs['poolclass'] = StaticPool
    engine = create_engine(url, **kwargs)

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT handling.
    @event.listens_for(engine, 'connect')
    def _sqlite_connect(dbapi_connection, _connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _sqlite_begin(connection) -> None:
        connection.exec_driver_sql('BEGIN')

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def get_db(request: Request) -> Iterator[Session]:
    session_factory = request.app.state.session_factory
    with session_factory() as db:
        yield db


def rollback_quietly(db: Session) -> None:
    try:
        db.rollback()
    except SQLAlchemyError:
        logger.exception('Rollback failed')


@contextmanager
def unit_of_work(db: Session, message: str, *, error_cls: type[StoreError] = StoreError) -> Iterator[Session]:
    """Commit on success, roll back on any failure.

    Service errors propagate unchanged; store failures are re-raised as
    ``error_cls`` carrying ``message`` and the underlying cause.
    """
    try:
        yield db
        db.commit()
    except ServiceError:
        rollback_quietly(db)
        raise
    except SQLAlchemyError as exc:
        rollback_quietly(db)
        logger.exception(message)
        raise error_cls(message, cause=str(exc)) from exc
    except Exception:
        rollback_quietly(db)
        raise
