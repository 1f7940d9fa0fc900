"""
Connection factories.

DBComparer never opens connections itself: it calls a factory with the DSN
and closes whatever the factory returns. psycopg2.connect is the simplest
factory; PooledConnectionFactory borrows from a psycopg2 pool instead and
returns the connection to the pool on close().
"""

import logging
import threading
from typing import Any, Callable, Dict, Mapping

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2.extensions import make_dsn

from dbcomparer.config import ComparerSettings
from dbcomparer.utils.vault_client import VaultClient

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[str], Any]


def connect(dsn: str):
    """Open a dedicated psycopg2 connection."""
    return psycopg2.connect(dsn)


class PooledConnection:
    """A borrowed connection; close() hands it back to its pool."""

    def __init__(self, pool: pg_pool.AbstractConnectionPool, connection):
        self._pool = pool
        self._connection = connection

    def cursor(self, *args, **kwargs):
        return self._connection.cursor(*args, **kwargs)

    def close(self) -> None:
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        self._pool.putconn(connection)

    @property
    def closed(self) -> bool:
        return self._connection is None

    def __getattr__(self, name):
        if self._connection is None:
            raise AttributeError(name)
        return getattr(self._connection, name)


class PooledConnectionFactory:
    """
    Connection factory backed by psycopg2 ThreadedConnectionPool.

    One pool is created per DSN on first use. Safe to share between threads
    running independent comparisons.
    """

    def __init__(self, minconn: int = 1, maxconn: int = 4):
        if minconn < 1 or maxconn < minconn:
            raise ValueError(f"invalid pool bounds: minconn={minconn}, maxconn={maxconn}")
        self.minconn = minconn
        self.maxconn = maxconn
        self._pools: Dict[str, pg_pool.ThreadedConnectionPool] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: ComparerSettings) -> "PooledConnectionFactory":
        return cls(minconn=settings.pool_min, maxconn=settings.pool_max)

    def __call__(self, dsn: str) -> PooledConnection:
        pool = self._get_pool(dsn)
        return PooledConnection(pool, pool.getconn())

    def _get_pool(self, dsn: str) -> pg_pool.ThreadedConnectionPool:
        with self._lock:
            pool = self._pools.get(dsn)
            if pool is None:
                pool = pg_pool.ThreadedConnectionPool(self.minconn, self.maxconn, dsn)
                self._pools[dsn] = pool
                logger.info(f"Created connection pool ({self.minconn}-{self.maxconn} connections)")
            return pool

    def closeall(self) -> None:
        """Close every pooled connection."""
        with self._lock:
            for pool in self._pools.values():
                pool.closeall()
            self._pools.clear()
        logger.info("Closed all connection pools")


def build_dsn(credentials: Mapping[str, Any]) -> str:
    """Build a libpq DSN from a Vault credentials secret."""
    params = {
        "host": credentials["host"],
        "port": credentials.get("port", 5432),
        "dbname": credentials["database"],
        "user": credentials["username"],
    }
    if credentials.get("password"):
        params["password"] = credentials["password"]
    return make_dsn(**params)


def resolve_dsn(settings: ComparerSettings, vault_client=None) -> str:
    """
    Pick the DSN to compare against.

    An explicit DSN wins; otherwise credentials are read from Vault at
    settings.vault_path.

    Args:
        settings: Comparer settings
        vault_client: VaultClient to use; created from VAULT_* env vars when
            omitted

    Raises:
        ValueError: If neither a DSN nor a Vault path is configured
    """
    if settings.dsn:
        return settings.dsn

    if not settings.vault_path:
        raise ValueError("Either DBCOMPARER_DSN or DBCOMPARER_VAULT_PATH must be set")

    if vault_client is None:
        with VaultClient() as client:
            credentials = client.get_database_credentials(settings.vault_path)
    else:
        credentials = vault_client.get_database_credentials(settings.vault_path)
    return build_dsn(credentials)
