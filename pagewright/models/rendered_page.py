"""Rendered page model for storing build output in a database."""

from sqlalchemy import Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pagewright.models.base import Base, TimestampMixin


class RenderedPage(Base, TimestampMixin):
    """One output file of a site build, keyed by (site, path)."""

    __tablename__ = "rendered_pages"
    __table_args__ = (UniqueConstraint("site", "path", name="uq_rendered_pages_site_path"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    site: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    path: Mapped[str] = mapped_column(String(1024), nullable=False)
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    checksum: Mapped[str] = mapped_column(String(64), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<RenderedPage(site={self.site!r}, path={self.path!r}, size={self.size})>"
