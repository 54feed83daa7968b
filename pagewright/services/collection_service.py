"""Collection resolution: group documents, merge defaults and order members."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from pagewright.config import DefaultsEntry, SiteConfig
from pagewright.exceptions import CollectionAmbiguityError
from pagewright.models.collection import Collection
from pagewright.models.document import Document

logger = logging.getLogger(__name__)

PAGES_TYPE = "pages"


@dataclass(frozen=True)
class BuildWarning:
    """A non-fatal problem found while building."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class Resolution:
    """Documents grouped into collections, pages and static files."""

    collections: dict[str, Collection]
    pages: list[Document] = field(default_factory=list)
    static_files: list[Document] = field(default_factory=list)
    warnings: list[BuildWarning] = field(default_factory=list)

    @property
    def documents(self) -> list[Document]:
        """Every processed document: collection members first, then pages."""
        members = [document for collection in self.collections.values() for document in collection]
        return members + list(self.pages)

    def collection_for_path(self, path: str) -> Optional[Collection]:
        """Most specific collection whose directory contains ``path``.

        Equally specific collections are tie-broken by declaration order.
        """
        best = None
        for collection in self.collections.values():
            if not collection.matches(path):
                continue
            if best is None or collection.specificity > best.specificity:
                best = collection
        return best


class CollectionResolver:
    """Assigns documents to collections and applies default attributes."""

    def __init__(self, config: SiteConfig):
        """
        Initialize resolver with the site configuration.

        Args:
            config: Site configuration describing collections and defaults
        """
        self.config = config
        self.tz = config.tzinfo

    def resolve(self, documents: Sequence[Document]) -> Resolution:
        """
        Resolve collection membership for the complete document set.

        Args:
            documents: Every parsed document, in discovery order

        Returns:
            Resolution with frozen, ordered collections

        Raises:
            CollectionAmbiguityError: If any document matches two collections
                                      with equally specific directories
        """
        collections = {
            collection_config.name: Collection.from_config(collection_config)
            for collection_config in self.config.collections
        }
        resolution = Resolution(collections=collections)

        ambiguities: dict[str, list[str]] = {}
        assignments: list[tuple[Document, Optional[Collection]]] = []
        for document in documents:
            if document.is_static:
                resolution.static_files.append(document)
                continue
            candidates = self.match(document, collections.values())
            if len(candidates) > 1:
                ambiguities[document.path] = [candidate.name for candidate in candidates]
                continue
            assignments.append((document, candidates[0] if candidates else None))

        if ambiguities:
            raise CollectionAmbiguityError(ambiguities)

        for document, collection in assignments:
            type_name = collection.name if collection is not None else PAGES_TYPE
            resolved = document.with_defaults(self.defaults_for(document, collection, type_name))
            if collection is None:
                resolution.pages.append(resolved.with_updates(collection=None))
                continue

            resolved = resolved.with_updates(collection=collection.name)
            if collection.date_ordered and resolved.get_date(self.tz) is None:
                warning = BuildWarning(
                    resolved.path,
                    f"No date in front-matter or filename; excluded from '{collection.name}'",
                )
                logger.warning(str(warning))
                resolution.warnings.append(warning)
                continue
            collection.add(resolved)

        for collection in collections.values():
            if collection.date_ordered:
                collection.reorder(key=lambda document: document.path)
                collection.reorder(key=lambda document: document.get_date(self.tz), reverse=True)
            collection.freeze()
            collection.check_membership()
            logger.debug("Collection %s has %d document(s)", collection.name, len(collection))

        return resolution

    @staticmethod
    def match(document: Document, collections: Iterable[Collection]) -> list[Collection]:
        """
        Find the collections a document belongs to.

        Args:
            document: Document to match
            collections: Collections in declaration order

        Returns:
            The matching collections with the most specific directory, in
            declaration order. More than one entry means the match is ambiguous.
        """
        matches = [collection for collection in collections if collection.matches(document.path)]
        if not matches:
            return []
        top = max(collection.specificity for collection in matches)
        return [collection for collection in matches if collection.specificity == top]

    def defaults_for(
        self, document: Document, collection: Optional[Collection], type_name: str
    ) -> dict[str, Any]:
        """
        Compute the default attributes for a document, lowest precedence first.

        Collection defaults come first, then every matching scoped defaults
        entry ordered by scope path depth (entries with a type outrank those
        without at equal depth; later declarations win among equals). The
        document's own front-matter is merged over the result by the caller.

        Args:
            document: Document being resolved
            collection: Collection the document belongs to, if any
            type_name: Collection name, or ``pages`` for ungrouped documents

        Returns:
            Merged defaults mapping
        """
        merged: dict[str, Any] = {}
        if collection is not None:
            merged.update(collection.defaults)

        applicable = [
            (index, entry)
            for index, entry in enumerate(self.config.defaults)
            if self._scope_matches(entry, document, type_name)
        ]
        applicable.sort(
            key=lambda item: (
                _path_depth(item[1].scope.path),
                item[1].scope.type is not None,
                item[0],
            )
        )
        for _, entry in applicable:
            merged.update(entry.values)
        return merged

    @staticmethod
    def _scope_matches(entry: DefaultsEntry, document: Document, type_name: str) -> bool:
        scope = entry.scope
        if scope.type is not None and scope.type != type_name:
            return False
        if not scope.path:
            return True
        if any(char in scope.path for char in "*?["):
            return fnmatch.fnmatch(document.path, scope.path) or fnmatch.fnmatch(
                document.directory, scope.path
            )
        return document.path == scope.path or document.path.startswith(scope.path + "/")


def _path_depth(path: str) -> int:
    return len([segment for segment in path.split("/") if segment])
