"""Collection model: a named, ordered grouping of documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from pagewright.config import CollectionConfig
from pagewright.models.document import Document


@dataclass(eq=False)
class Collection:
    """A named collection of documents sharing a directory and defaults.

    Membership is append-only until :meth:`freeze` is called; afterwards the
    member sequence is read-only.
    """

    name: str
    directory: str
    output: bool = True
    date_ordered: bool = False
    permalink: Optional[str] = None
    defaults: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    _documents: list[Document] = field(default_factory=list, repr=False)
    _frozen: bool = field(default=False, repr=False)

    @classmethod
    def from_config(cls, config: CollectionConfig) -> "Collection":
        """Create an empty collection from its configuration."""
        return cls(
            name=config.name,
            directory=config.directory,
            output=config.outputs,
            date_ordered=config.date_ordered,
            permalink=config.permalink,
            defaults=dict(config.defaults),
            metadata=config.metadata,
        )

    def __repr__(self) -> str:
        return f"<Collection(name={self.name!r}, documents={len(self._documents)})>"

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    @property
    def documents(self) -> tuple[Document, ...]:
        """Members in collection order."""
        return tuple(self._documents)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def matches(self, path: str) -> bool:
        """Check whether a source path lies inside this collection's directory."""
        if not self.directory:
            return True
        return path == self.directory or path.startswith(self.directory + "/")

    @property
    def specificity(self) -> int:
        """Number of directory segments; deeper directories are more specific."""
        return len([segment for segment in self.directory.split("/") if segment])

    def relative_path(self, path: str) -> str:
        """Source path relative to the collection directory."""
        if self.directory and path.startswith(self.directory + "/"):
            return path[len(self.directory) + 1:]
        return path

    def add(self, document: Document) -> None:
        """
        Append a member.

        Args:
            document: Document whose ``collection`` field names this collection

        Raises:
            RuntimeError: If the collection is frozen
            ValueError: If the document belongs to another collection
        """
        if self._frozen:
            raise RuntimeError(f"Collection '{self.name}' is frozen")
        if document.collection != self.name:
            raise ValueError(
                f"Document '{document.path}' belongs to {document.collection!r}, not '{self.name}'"
            )
        self._documents.append(document)

    def reorder(self, key: Callable[[Document], Any], reverse: bool = False) -> None:
        """Stable in-place sort of the members; only allowed before freezing."""
        if self._frozen:
            raise RuntimeError(f"Collection '{self.name}' is frozen")
        self._documents.sort(key=key, reverse=reverse)

    def freeze(self) -> None:
        """Freeze membership and order."""
        self._frozen = True

    def check_membership(self) -> None:
        """
        Verify that every member points back at this collection.

        Raises:
            ValueError: If a member names a different collection
        """
        for document in self._documents:
            if document.collection != self.name:
                raise ValueError(
                    f"Document '{document.path}' is listed in '{self.name}' "
                    f"but belongs to {document.collection!r}"
                )
