"""Supabase-backed document store.

Collections map to tables whose primary key column is ``id``.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from supabase import Client, PostgrestAPIError

from pixprint.domain.documents import DocumentRef, DocumentSnapshot
from pixprint.domain.errors import DocumentStoreError
from pixprint.services.documents import DocumentStore, WriteBatch

_logger = logging.getLogger(__name__)

_QueuedUpdate = tuple[DocumentRef, dict[str, object], dict[str, object]]


@dataclass
class SupabaseWriteBatch(WriteBatch):
    """Batch of updates applied as a single PostgREST statement.

    A single statement runs in one transaction, so every queued update must
    target the same table with the same field values and conditions.
    """

    client: Client
    updates: list[_QueuedUpdate] = field(default_factory=list)

    def update(
        self,
        ref: DocumentRef,
        fields: dict[str, object],
        only_if: dict[str, object] | None = None,
    ) -> None:
        """Queue an update."""
        self.updates.append((ref, dict(fields), dict(only_if or {})))

    async def commit(self) -> int:
        """Apply every queued update in one statement and return the row count."""
        if not self.updates:
            return 0
        first_ref, fields, conditions = self.updates[0]
        collection = first_ref.collection
        for ref, other_fields, other_conditions in self.updates[1:]:
            if (
                ref.collection != collection
                or other_fields != fields
                or other_conditions != conditions
            ):
                raise DocumentStoreError(
                    "Batch updates must share one collection, field set and "
                    "condition set"
                )
        ids = [ref.id for ref, _, _ in self.updates]
        query = self.client.table(collection).update(fields).in_("id", ids)
        query = _apply_filters(query, conditions)
        try:
            response = await asyncio.to_thread(query.execute)
        except PostgrestAPIError as exc:
            raise DocumentStoreError(f"Batch update on {collection} failed") from exc
        updated = len(response.data or [])
        if updated != len(ids):
            _logger.warning(
                "Batch updated fewer rows than queued: collection=%s queued=%s "
                "updated=%s",
                collection,
                len(ids),
                updated,
            )
        return updated


@dataclass
class SupabaseDocumentStore(DocumentStore):
    """Document store implemented with Supabase tables."""

    client: Client

    async def get_document(
        self, collection: str, document_id: str
    ) -> DocumentSnapshot | None:
        """Return a row by id, if present."""
        query = self.client.table(collection).select("*").eq("id", document_id).limit(1)
        response = await self._execute(query, collection)
        if not response.data:
            return None
        return _snapshot(collection, response.data[0])

    async def set_document(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, object],
        merge: bool = False,
    ) -> None:
        """Upsert a row.

        Rows have a fixed column set, so both modes write exactly the given
        fields; without ``merge`` the given fields are the whole document.
        """
        payload = {**fields, "id": document_id}
        query = self.client.table(collection).upsert(payload, on_conflict="id")
        await self._execute(query, collection)

    async def query_documents(
        self, collection: str, filters: dict[str, object]
    ) -> list[DocumentSnapshot]:
        """Return rows whose columns equal every filter value."""
        query = _apply_filters(self.client.table(collection).select("*"), filters)
        response = await self._execute(query, collection)
        return [_snapshot(collection, row) for row in response.data or []]

    async def update_document(
        self,
        ref: DocumentRef,
        fields: dict[str, object],
        only_if_absent: str | None = None,
    ) -> bool:
        """Update a row, optionally only while a column is still null."""
        query = self.client.table(ref.collection).update(fields).eq("id", ref.id)
        if only_if_absent is not None:
            query = query.is_(only_if_absent, "null")
        response = await self._execute(query, ref.collection)
        return bool(response.data)

    def batch(self) -> SupabaseWriteBatch:
        """Start a new write batch."""
        return SupabaseWriteBatch(self.client)

    async def _execute(self, query, collection: str):  # type: ignore[no-untyped-def]
        try:
            return await asyncio.to_thread(query.execute)
        except PostgrestAPIError as exc:
            raise DocumentStoreError(f"Supabase request on {collection} failed") from exc


def _apply_filters(query, filters: dict[str, object]):  # type: ignore[no-untyped-def]
    for column, value in filters.items():
        query = query.is_(column, "null") if value is None else query.eq(column, value)
    return query


def _snapshot(collection: str, row: dict[str, object]) -> DocumentSnapshot:
    return DocumentSnapshot(ref=DocumentRef(collection, str(row["id"])), data=row)
