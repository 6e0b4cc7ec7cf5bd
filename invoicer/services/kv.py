# invoicer/services/kv.py
from typing import List, NamedTuple, Optional

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, delete, func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

metadata = MetaData()

# dialects with INSERT .. ON CONFLICT DO UPDATE
UPSERT_INSERTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}

kv_entries = Table(
    "kv_entries",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
)


class ListResult(NamedTuple):
    keys: List[str]
    list_complete: bool
    cursor: Optional[str] = None


class KeyValueStore:
    """
    String keys to string values, listable by prefix.
    Listing is in ascending key order; the cursor is the last key of the page.
    """

    MAX_LIST_LIMIT = 1000

    def __init__(self, engine: Engine):
        self.engine = engine
        metadata.create_all(engine)

    @classmethod
    def from_url(cls, url: str) -> "KeyValueStore":
        if url in ("sqlite://", "sqlite:///:memory:"):
            # single shared connection, each new one would see an empty database
            return cls(create_engine(
                url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            ))
        return cls(create_engine(url, future=True))

    def get(self, key: str) -> Optional[str]:
        with self.engine.connect() as conn:
            return conn.execute(
                select(kv_entries.c.value).where(kv_entries.c.key == key)
            ).scalar_one_or_none()

    def put(self, key: str, value: str) -> None:
        dialect_insert = UPSERT_INSERTS.get(self.engine.dialect.name)
        with self.engine.begin() as conn:
            if dialect_insert is None:
                result = conn.execute(update(kv_entries).where(kv_entries.c.key == key).values(value=value))
                if result.rowcount == 0:
                    conn.execute(insert(kv_entries).values(key=key, value=value))
                return

            stmt = dialect_insert(kv_entries).values(key=key, value=value)
            stmt = stmt.on_conflict_do_update(
                index_elements=[kv_entries.c.key],
                set_={"value": stmt.excluded.value},
            )
            conn.execute(stmt)

    def delete(self, key: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(kv_entries).where(kv_entries.c.key == key))

    def list(self, prefix: str = "", limit: int = MAX_LIST_LIMIT, cursor: Optional[str] = None) -> ListResult:
        limit = max(1, min(limit, self.MAX_LIST_LIMIT))
        conditions = []
        if prefix:
            # SQLite LIKE ignores ASCII case, compare the prefix exactly
            conditions.append(func.substr(kv_entries.c.key, 1, len(prefix)) == prefix)
        if cursor:
            conditions.append(kv_entries.c.key > cursor)

        stmt = select(kv_entries.c.key).order_by(kv_entries.c.key.asc()).limit(limit + 1)
        if conditions:
            stmt = stmt.where(*conditions)
        with self.engine.connect() as conn:
            keys = list(conn.execute(stmt).scalars())

        if len(keys) > limit:
            page = keys[:limit]
            return ListResult(keys=page, list_complete=False, cursor=page[-1])
        return ListResult(keys=keys, list_complete=True)
