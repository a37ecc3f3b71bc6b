"""SQLite entry store backing the durable cache.

One table, ``dbcache (key TEXT PRIMARY KEY, content BLOB)``. The store has no
notion of expiry: ``content`` is an opaque serialized cache entry. Every
mutation is a single auto-committing statement.
"""

import logging
from pathlib import Path

from sqlalchemy import (
    Column,
    Integer,
    LargeBinary,
    MetaData,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

dbcache_table = Table(
    "dbcache",
    metadata,
    Column("key", Text, primary_key=True, nullable=False),
    Column("content", LargeBinary),
)

user_table = Table(
    "user",
    metadata,
    Column("user_id", Integer, primary_key=True, nullable=False),
    Column("username", Text, unique=True),
    Column("password", Text),
    Column("active", Integer, nullable=False),
    Column("email", Text),
)


def sqlite_engine(path: str | Path) -> Engine:
    # Request threads share the pool, so connections must not be pinned to their creator.
    return create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})


class EntryStore:
    """Key -> blob table. Raises SQLAlchemyError on store failures."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def open(cls, path: str | Path) -> "EntryStore":
        return cls(sqlite_engine(path))

    def create_tables(self) -> None:
        """Create the dbcache table if it is absent."""
        dbcache_table.create(self.engine, checkfirst=True)

    def get(self, key: str) -> bytes | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(dbcache_table.c.content).where(dbcache_table.c.key == key)).first()
        return None if row is None else row.content

    def put(self, key: str, content: bytes) -> None:
        stmt = sqlite_insert(dbcache_table).values(key=key, content=content)
        stmt = stmt.on_conflict_do_update(
            index_elements=[dbcache_table.c.key],
            set_={"content": stmt.excluded.content},
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def delete(self, key: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(dbcache_table).where(dbcache_table.c.key == key))

    def clear(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(dbcache_table))

    def dispose(self) -> None:
        self.engine.dispose()


def initialize_database(path: str | Path) -> None:
    """Create a new store file with the user and dbcache tables.

    Runs in one transaction; refuses to touch an existing file.
    """
    path = Path(path)
    if path.exists():
        raise FileExistsError(f"File '{path}' already exists. Can't initialize it.")

    engine = sqlite_engine(path)
    try:
        with engine.begin() as conn:
            metadata.create_all(conn)
            conn.execute(
                insert(user_table).values(user_id=1, username="admin", password="", active=1, email="")
            )
    finally:
        engine.dispose()
    logger.info("Initialized store file %s", path)
