"""Pagination: split an ordered document sequence into linked pages."""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Sequence

from pagewright.config import SiteConfig
from pagewright.models.collection import Collection
from pagewright.models.document import Document
from pagewright.models.page import Page
from pagewright.services.permalink_service import normalize_output_path

logger = logging.getLogger(__name__)

PAGE_NUMBER = ":num"


def paginate(
    documents: Sequence[Document],
    per_page: int,
    collection: str = "",
    path_for: Optional[Callable[[int], str]] = None,
) -> list[Page]:
    """
    Partition an ordered sequence into pages of at most ``per_page`` documents.

    Page ``i`` (1-based) holds offsets ``(i-1)*per_page`` through
    ``min(i*per_page, len)-1``. An empty sequence yields no pages at all.

    Args:
        documents: Ordered documents
        per_page: Page size, greater than zero
        collection: Name of the paginated collection
        path_for: Optional function giving the output path of a page index

    Returns:
        Linked pages in index order

    Raises:
        ValueError: If ``per_page`` is not positive
    """
    if per_page <= 0:
        raise ValueError(f"Page size must be positive, got {per_page}")
    if not documents:
        return []

    total = math.ceil(len(documents) / per_page)
    pages = []
    for index in range(1, total + 1):
        start = (index - 1) * per_page
        pages.append(
            Page(
                collection=collection,
                index=index,
                total_pages=total,
                documents=tuple(documents[start:start + per_page]),
                path=path_for(index) if path_for else None,
            )
        )

    for previous, following in zip(pages, pages[1:]):
        previous.next_page = following
        following.previous_page = previous
    return pages


def pagination_path(template: str, index: int) -> str:
    """
    Output path of page ``index`` for a ``paginate_path`` template.

    The first page lives in the template's directory (``blog/page:num`` ->
    ``/blog/``); later pages substitute ``:num`` (``/blog/page2/``).
    """
    template = template.strip("/")
    if index == 1:
        directory = template.rsplit("/", 1)[0] if "/" in template else ""
        if PAGE_NUMBER in directory:
            directory = directory.replace(PAGE_NUMBER, "1")
        return normalize_output_path(f"/{directory}/")
    return normalize_output_path(f"/{template.replace(PAGE_NUMBER, str(index))}/")


class PaginationService:
    """Paginates every collection that has pagination configured."""

    def __init__(self, config: SiteConfig):
        """
        Initialize service with the site configuration.

        Args:
            config: Site configuration holding pagination settings
        """
        self.config = config

    def paginate_collection(self, collection: Collection) -> list[Page]:
        """
        Paginate one collection using its configured page size and path.

        Returns:
            Pages of the collection, empty if pagination is not configured or
            the collection has no members
        """
        collection_config = self.config.get_collection(collection.name)
        if collection_config is None:
            return []
        per_page, template = self.config.pagination_for(collection_config)
        if per_page is None:
            return []

        pages = paginate(
            collection.documents,
            per_page,
            collection=collection.name,
            path_for=lambda index: pagination_path(template, index),
        )
        logger.debug(
            "Paginated %s into %d page(s) of %d", collection.name, len(pages), per_page
        )
        return pages

    def paginate_all(self, collections: dict[str, Collection]) -> dict[str, list[Page]]:
        """Paginate every configured collection, keyed by collection name."""
        paginations = {}
        for name, collection in collections.items():
            collection_config = self.config.get_collection(name)
            if collection_config is None or self.config.pagination_for(collection_config)[0] is None:
                continue
            paginations[name] = self.paginate_collection(collection)
        return paginations
