"""Rendering extension points.

The pipeline does not implement a template engine. Content is produced by a
:class:`DocumentRenderer` and a :class:`PaginationRenderer`, then passed
through any number of :class:`DocumentPostProcessor` objects. All three are
plain protocols: callers hand instances to the builder explicitly.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from pagewright.config import SiteConfig
from pagewright.models.collection import Collection
from pagewright.models.document import Document
from pagewright.models.page import Page


@dataclass(frozen=True)
class SiteContext:
    """Read-only view of the resolved site handed to renderers."""

    config: SiteConfig
    collections: Mapping[str, Collection] = field(default_factory=dict)
    pages: Sequence[Document] = ()
    paginations: Mapping[str, Sequence[Page]] = field(default_factory=dict)
    urls: Mapping[str, str] = field(default_factory=dict)

    def url_for(self, document: Document) -> Optional[str]:
        """Site URL (baseurl included) of a document, if it is published."""
        path = self.urls.get(document.path)
        if path is None:
            return None
        return self.config.baseurl + path

    @property
    def data(self) -> dict[str, Any]:
        return self.config.site_data


@runtime_checkable
class DocumentRenderer(Protocol):
    """Produces the output content of a processed document."""

    def render(self, document: Document, site: SiteContext) -> str:
        ...


@runtime_checkable
class PaginationRenderer(Protocol):
    """Produces the output content of one pagination page."""

    def render(self, page: Page, site: SiteContext, host: Optional[Document] = None) -> str:
        ...


@runtime_checkable
class DocumentPostProcessor(Protocol):
    """Transforms rendered content; processors run in the order given."""

    def process(self, document: Document, content: str) -> str:
        ...


class PassthroughRenderer:
    """Emits the document body unchanged."""

    def render(self, document: Document, site: SiteContext) -> str:
        if isinstance(document.body, bytes):
            return document.body.decode(site.config.encoding)
        return document.body


class ListingRenderer:
    """Renders a pagination page as a minimal HTML listing.

    The host page's body, when there is one, is emitted above the listing.
    """

    def render(self, page: Page, site: SiteContext, host: Optional[Document] = None) -> str:
        parts = []
        if host is not None and isinstance(host.body, str) and host.body:
            parts.append(host.body.rstrip("\n"))

        items = []
        for document in page.documents:
            title = html.escape(str(document.get("title", document.title)))
            url = site.url_for(document)
            if url is None:
                items.append(f"  <li>{title}</li>")
            else:
                items.append(f'  <li><a href="{html.escape(url)}">{title}</a></li>')
        parts.append("<ul>\n" + "\n".join(items) + "\n</ul>")

        links = []
        if page.previous_page is not None and page.previous_page.path:
            href = html.escape(site.config.baseurl + page.previous_page.path)
            links.append(f'<a rel="prev" href="{href}">Previous</a>')
        links.append(f"<span>Page {page.index} of {page.total_pages}</span>")
        if page.next_page is not None and page.next_page.path:
            href = html.escape(site.config.baseurl + page.next_page.path)
            links.append(f'<a rel="next" href="{href}">Next</a>')
        parts.append('<nav class="pagination">' + " ".join(links) + "</nav>")
        return "\n".join(parts) + "\n"
