"""Repository pattern implementation for the output store."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from pagewright.models.rendered_page import RenderedPage


class RenderedPageRepository:
    """Repository for rendered page operations."""

    def __init__(self, session: Session):
        """Initialize repository with a database session."""
        self.session = session

    def create(self, page: RenderedPage) -> RenderedPage:
        """Create a new rendered page."""
        self.session.add(page)
        self.session.flush()
        return page

    def create_many(self, pages: list[RenderedPage]) -> list[RenderedPage]:
        """Create several rendered pages in one flush."""
        self.session.add_all(pages)
        self.session.flush()
        return pages

    def get_by_path(self, site: str, path: str) -> Optional[RenderedPage]:
        """Get a rendered page by site and output path."""
        stmt = select(RenderedPage).where(RenderedPage.site == site, RenderedPage.path == path)
        return self.session.scalar(stmt)

    def list_by_site(self, site: str) -> list[RenderedPage]:
        """Get every rendered page of a site, ordered by path."""
        stmt = select(RenderedPage).where(RenderedPage.site == site).order_by(RenderedPage.path)
        return list(self.session.scalars(stmt))

    def count(self, site: Optional[str] = None) -> int:
        """Count rendered pages, optionally for one site."""
        query = select(func.count(RenderedPage.id))
        if site is not None:
            query = query.where(RenderedPage.site == site)
        return self.session.scalar(query) or 0

    def delete_by_site(self, site: str) -> int:
        """Delete every rendered page of a site; returns the number deleted."""
        result = self.session.execute(delete(RenderedPage).where(RenderedPage.site == site))
        self.session.flush()
        return result.rowcount or 0
