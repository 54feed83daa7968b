"""Pipeline services."""

from pagewright.services.build_service import BuildResult, BuildState, SiteBuilder, build_site
from pagewright.services.collection_service import BuildWarning, CollectionResolver, Resolution
from pagewright.services.front_matter import FrontMatterParser, ParsedSource
from pagewright.services.pagination_service import PaginationService, paginate
from pagewright.services.permalink_service import PermalinkPattern, PermalinkResolver
from pagewright.services.render_service import (
    DocumentPostProcessor,
    DocumentRenderer,
    ListingRenderer,
    PaginationRenderer,
    PassthroughRenderer,
    SiteContext,
)

__all__ = [
    "BuildResult",
    "BuildState",
    "SiteBuilder",
    "build_site",
    "BuildWarning",
    "CollectionResolver",
    "Resolution",
    "FrontMatterParser",
    "ParsedSource",
    "PaginationService",
    "paginate",
    "PermalinkPattern",
    "PermalinkResolver",
    "DocumentPostProcessor",
    "DocumentRenderer",
    "ListingRenderer",
    "PaginationRenderer",
    "PassthroughRenderer",
    "SiteContext",
]
