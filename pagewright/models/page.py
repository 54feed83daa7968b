"""Pagination unit model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pagewright.models.document import Document


@dataclass(eq=False)
class Page:
    """One page of a paginated collection.

    Identity is ``(collection, index)``; ``index`` is 1-based.
    """

    collection: str
    index: int
    total_pages: int
    documents: tuple[Document, ...] = ()
    path: Optional[str] = None
    previous_page: Optional["Page"] = field(default=None, repr=False)
    next_page: Optional["Page"] = field(default=None, repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Page):
            return NotImplemented
        return (self.collection, self.index) == (other.collection, other.index)

    def __hash__(self) -> int:
        return hash((self.collection, self.index))

    def __len__(self) -> int:
        return len(self.documents)

    @property
    def is_first(self) -> bool:
        return self.previous_page is None

    @property
    def is_last(self) -> bool:
        return self.next_page is None
