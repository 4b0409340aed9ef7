"""SQLite-backed document cache.

Inserts use ``ON CONFLICT DO NOTHING`` so the first writer of an identity
wins and later writers see its row. A replacing put upserts instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.dialects.sqlite import insert

from guidesync.domain.ports.cache import CachedDocument

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "pk": "pk_%(table_name)s",
    }
)

document_table = Table(
    "cached_document",
    metadata,
    Column("identity", String(64), primary_key=True),
    Column("method", String(16), nullable=False),
    Column("url", Text, nullable=False, index=True),
    Column("status_code", Integer, nullable=False),
    Column("text", Text, nullable=False),
    Column("fetched_at", DateTime, nullable=False, server_default=func.now()),
)


class SqlAlchemyCacheBackend:
    def __init__(self, *, engine: Engine | None = None, database_uri: str | None = None) -> None:
        if engine is None:
            if database_uri is None:
                raise ValueError("Provide an engine or a database URI")
            engine = create_engine(database_uri)
        self._engine = engine
        metadata.create_all(self._engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def get(self, identity: str) -> CachedDocument | None:
        statement = select(document_table).where(document_table.c.identity == identity)
        with self._engine.connect() as connection:
            row = connection.execute(statement).mappings().first()
        if row is None:
            return None
        return CachedDocument(
            identity=row["identity"],
            method=row["method"],
            url=row["url"],
            status_code=row["status_code"],
            text=row["text"],
        )

    def put(self, document: CachedDocument, *, replace: bool = False) -> bool:
        statement = insert(document_table).values(
            identity=document.identity,
            method=document.method,
            url=document.url,
            status_code=document.status_code,
            text=document.text,
        )
        if replace:
            statement = statement.on_conflict_do_update(
                index_elements=[document_table.c.identity],
                set_={
                    "method": statement.excluded.method,
                    "url": statement.excluded.url,
                    "status_code": statement.excluded.status_code,
                    "text": statement.excluded.text,
                    "fetched_at": func.now(),
                },
            )
        else:
            statement = statement.on_conflict_do_nothing(
                index_elements=[document_table.c.identity]
            )
        with self._engine.begin() as connection:
            result = connection.execute(statement)
        return result.rowcount > 0

    def delete(self, identity: str) -> int:
        statement = delete(document_table).where(document_table.c.identity == identity)
        with self._engine.begin() as connection:
            return connection.execute(statement).rowcount

    def delete_prefix(self, url_prefix: str) -> int:
        statement = delete(document_table).where(
            document_table.c.url.startswith(url_prefix, autoescape=True)
        )
        with self._engine.begin() as connection:
            deleted = connection.execute(statement).rowcount
        log.debug("Deleted %d cached documents under %s", deleted, url_prefix)
        return deleted

    def clear(self) -> int:
        with self._engine.begin() as connection:
            return connection.execute(delete(document_table)).rowcount

    def close(self) -> None:
        self._engine.dispose()
