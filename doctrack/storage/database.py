"""
Engine and session provider for the storage layer.

Stores never open connections on their own: they are handed a
``sessionmaker`` and borrow one session per operation. ``session_maker``
below is the process-wide provider used when nothing else is injected,
for example by ``doctrack.server.services.login_service.get_login_service``.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, Field, SecretStr
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import Session, sessionmaker

from doctrack.core.logger import doctrack_logger as logger


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, '').strip()
    return int(value) if value else default


class DatabaseConfig(BaseModel):
    """Connection settings, read from the environment by default."""

    url: str | None = Field(default_factory=lambda: os.getenv('DB_URL') or None)
    host: str = Field(default_factory=lambda: os.getenv('DB_HOST', 'localhost'))
    port: int = Field(default_factory=lambda: _env_int('DB_PORT', 5432))
    name: str = Field(default_factory=lambda: os.getenv('DB_NAME', 'doctrack'))
    user: str = Field(default_factory=lambda: os.getenv('DB_USER', 'postgres'))
    password: SecretStr = Field(
        default_factory=lambda: SecretStr(os.getenv('DB_PASS', 'postgres'))
    )
    pool_size: int = Field(default_factory=lambda: _env_int('DB_POOL_SIZE', 25))
    max_overflow: int = Field(default_factory=lambda: _env_int('DB_MAX_OVERFLOW', 10))
    echo: bool = Field(
        default_factory=lambda: os.getenv('DB_ECHO', '0').lower() in ('1', 'true')
    )

    def get_url(self) -> URL:
        if self.url:
            return make_url(self.url)
        return URL.create(
            'postgresql+psycopg',
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.name,
        )


def _install_sqlite_transactions(engine: Engine) -> None:
    """Make pysqlite honor SQLAlchemy transaction boundaries.

    The driver otherwise defers BEGIN until the first write, which lets two
    read-then-write transactions interleave. ``BEGIN IMMEDIATE`` takes the
    write lock up front so concurrent writers queue on the busy timeout.
    """

    @event.listens_for(engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN IMMEDIATE')


def create_db_engine(url: str | URL, **kwargs) -> Engine:
    """Create an engine, applying the SQLite transaction recipe when needed."""
    engine = create_engine(url, **kwargs)
    if engine.dialect.name == 'sqlite':
        _install_sqlite_transactions(engine)
    return engine


@lru_cache
def _get_database_config() -> DatabaseConfig:
    return DatabaseConfig()


@lru_cache
def get_engine() -> Engine:
    config = _get_database_config()
    url = config.get_url()
    kwargs = {'echo': config.echo}
    if url.get_backend_name() != 'sqlite':
        kwargs.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_pre_ping=True,
        )
    logger.info(
        'Creating database engine',
        extra={'backend': url.get_backend_name(), 'host': url.host},
    )
    return create_db_engine(url, **kwargs)


@lru_cache
def _get_session_maker() -> sessionmaker:
    return sessionmaker(bind=get_engine(), expire_on_commit=False)


def session_maker(**kwargs) -> Session:
    """Open a session from the process-wide provider.

    Keyword arguments are forwarded to the underlying ``sessionmaker``.
    """
    return _get_session_maker()(**kwargs)


def dialect_insert(session: Session, model):
    """Return an INSERT construct that supports ``on_conflict_*`` for the bound dialect."""
    if session.get_bind().dialect.name == 'sqlite':
        return sqlite.insert(model)
    return postgresql.insert(model)
