"""Document store references and snapshots."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DocumentRef:
    """Points at one document in a collection."""

    collection: str
    id: str


@dataclass(frozen=True)
class DocumentSnapshot:
    """A document read from the store."""

    ref: DocumentRef
    data: dict[str, object]

    @property
    def id(self) -> str:
        return self.ref.id
