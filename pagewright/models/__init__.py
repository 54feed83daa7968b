"""Models for the content pipeline and its output store."""

from pagewright.models.base import Base
from pagewright.models.collection import Collection
from pagewright.models.document import Document
from pagewright.models.page import Page
from pagewright.models.rendered_page import RenderedPage

__all__ = ["Base", "Document", "Collection", "Page", "RenderedPage"]
