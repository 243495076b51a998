"""Document store interfaces consumed by the account services."""

from typing import Protocol

from pixprint.domain.documents import DocumentRef, DocumentSnapshot


class WriteBatch(Protocol):
    """All-or-nothing group of document updates."""

    def update(
        self,
        ref: DocumentRef,
        fields: dict[str, object],
        only_if: dict[str, object] | None = None,
    ) -> None:
        """Queue an update of the given document.

        With ``only_if``, the update applies only while every named field
        still holds the given value (None meaning null).
        """

    async def commit(self) -> int:
        """Apply every queued update, or none of them.

        Returns how many documents were changed; documents skipped by an
        ``only_if`` condition are not counted.
        """


class DocumentStore(Protocol):
    """Read and write primitives of the document store."""

    async def get_document(
        self, collection: str, document_id: str
    ) -> DocumentSnapshot | None:
        """Return a document by id, if present."""

    async def set_document(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, object],
        merge: bool = False,
    ) -> None:
        """Create or overwrite a document, merging fields when requested."""

    async def query_documents(
        self, collection: str, filters: dict[str, object]
    ) -> list[DocumentSnapshot]:
        """Return documents whose fields equal every filter value."""

    async def update_document(
        self,
        ref: DocumentRef,
        fields: dict[str, object],
        only_if_absent: str | None = None,
    ) -> bool:
        """Update a document and return whether a row changed.

        When ``only_if_absent`` names a field, the update applies only while
        that field is still null.
        """

    def batch(self) -> WriteBatch:
        """Start a new write batch."""
