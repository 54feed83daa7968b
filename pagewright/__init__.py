"""pagewright - static site content pipeline."""

from pagewright.config import SiteConfig, load_site_config
from pagewright.services.build_service import BuildResult, SiteBuilder, build_site

__version__ = "0.1.0"

__all__ = ["SiteConfig", "load_site_config", "SiteBuilder", "BuildResult", "build_site"]
