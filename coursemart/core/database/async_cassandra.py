"""Async Cassandra connection using cassandra-asyncio-driver.

The cassandra-asyncio-driver extends the standard cassandra-driver with a
``session.aexecute()`` coroutine, so services never block the event loop
on queries. Connecting itself is synchronous.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from coursemart.auth.models import AUTH_TABLES_CQL
from coursemart.config.settings import get_settings
from coursemart.courses.models import COURSES_TABLES_CQL
from coursemart.progress.models import PROGRESS_TABLES_CQL
from coursemart.reviews.models import REVIEWS_TABLES_CQL


logger = structlog.get_logger(__name__)

# Owner package name -> CREATE statements, in creation order
SCHEMA: dict[str, list[str]] = {
    "auth": AUTH_TABLES_CQL,
    "courses": COURSES_TABLES_CQL,
    "progress": PROGRESS_TABLES_CQL,
    "reviews": REVIEWS_TABLES_CQL,
}


class AsyncCassandraConnection:
    """Cluster and session lifecycle, shared process-wide."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing an existing session.

        Raises:
            ConnectionError: If the cluster cannot be reached.
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
            cls._session.default_timeout = settings.cassandra_request_timeout
            logger.info(
                "cassandra_connected",
                hosts=settings.cassandra_hosts,
                port=settings.cassandra_port,
            )
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        return cls._session

    @classmethod
    def get_session(cls):
        if cls._session is None:
            return cls.connect()
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


async def init_async_keyspace(session, keyspace: str) -> None:
    """Create keyspace if not exists."""
    settings = get_settings()

    if settings.is_production:
        replication = "'class': 'NetworkTopologyStrategy', 'datacenter1': 3"
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"

    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )
    logger.info("keyspace_created", keyspace=keyspace)


async def init_async_tables(session, keyspace: str) -> None:
    """Create every package's tables."""
    for owner, statements in SCHEMA.items():
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("tables_created", owner=owner, keyspace=keyspace)


async def init_async_cassandra():
    """Connect, then create keyspace and tables if they do not exist.

    Returns:
        Session with ``aexecute()`` support.
    """
    settings = get_settings()

    session = AsyncCassandraConnection.connect()
    await init_async_keyspace(session, settings.cassandra_keyspace)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_tables(session, settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
