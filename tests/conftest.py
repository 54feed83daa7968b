"""Shared pytest fixtures and test utilities for pagewright tests."""

import os
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from pagewright.config import SiteConfig, get_settings, parse_site_config
from pagewright.models.document import Document
from pagewright.models.values import wrap_mapping
from pagewright.storage.database import Database


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test read runtime settings afresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="function")
def temp_db() -> Generator[Database, None, None]:
    """
    Create a temporary SQLite database for testing.

    Yields:
        Database instance with tables created
    """
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    database = Database(f"sqlite:///{db_path}")
    database.create_tables()

    yield database

    database.drop_tables()
    database.dispose()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def db_session(temp_db):
    """Get a database session from temp_db."""
    with temp_db.session() as session:
        yield session


@pytest.fixture
def site_root(tmp_path) -> Path:
    """Empty site source directory."""
    root = tmp_path / "site"
    root.mkdir()
    return root


@pytest.fixture
def write_site(site_root) -> Callable[[dict], Path]:
    """
    Write files into the site source directory.

    Returns:
        Function taking a ``{relative path: text or bytes}`` mapping and
        returning the site root
    """

    def _write(files: dict) -> Path:
        for relative, content in files.items():
            target = site_root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")
        return site_root

    return _write


@pytest.fixture
def site_config() -> SiteConfig:
    """Default site configuration (only the implicit posts collection)."""
    return SiteConfig()


@pytest.fixture
def make_config() -> Callable[..., SiteConfig]:
    """Build a site configuration from keyword data."""

    def _make(**data) -> SiteConfig:
        return parse_site_config(data)

    return _make


@pytest.fixture
def make_document() -> Callable[..., Document]:
    """Create a text document with plain-Python front-matter."""

    def _make(path: str, body: str = "", **metadata) -> Document:
        return Document(path=path, metadata=wrap_mapping(metadata), body=body)

    return _make

