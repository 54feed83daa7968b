"""Output writers: persist a finished output tree.

Writers receive the complete ``path -> content`` mapping of a successful
build and persist it all-or-nothing.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Mapping, Protocol, runtime_checkable

from sqlalchemy.exc import SQLAlchemyError

from pagewright.exceptions import DatabaseError, FilesystemError
from pagewright.models.rendered_page import RenderedPage
from pagewright.storage.database import Database
from pagewright.storage.repositories import RenderedPageRepository

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


@runtime_checkable
class OutputWriter(Protocol):
    """Persists an output tree."""

    def write(self, tree: Mapping[str, bytes]) -> None:
        ...


def output_file_path(path: str) -> str:
    """
    Relative file path for an output path.

    Directory-style paths map to their index file: ``/`` -> ``index.html``,
    ``/blog/`` -> ``blog/index.html``; ``/about.html`` -> ``about.html``.

    Raises:
        FilesystemError: If the path would leave the destination
    """
    segments = [segment for segment in path.split("/") if segment]
    if any(segment in (".", "..") for segment in segments):
        raise FilesystemError(f"Output path '{path}' escapes the destination", path)
    if path.endswith("/") or not segments:
        segments.append(INDEX_FILE)
    return "/".join(segments)


class MemoryWriter:
    """Keeps the last written tree in memory."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.writes = 0

    def write(self, tree: Mapping[str, bytes]) -> None:
        self.files = dict(tree)
        self.writes += 1


class DirectoryWriter:
    """Writes the tree to a local directory.

    Files are staged in a sibling temporary directory which then replaces the
    destination, so a failed write leaves the previous output untouched.
    """

    def __init__(self, destination: str | Path):
        """
        Initialize writer.

        Args:
            destination: Output directory; replaced as a whole on every write
        """
        self.destination = Path(destination).absolute()

    def write(self, tree: Mapping[str, bytes]) -> None:
        """
        Write every file of the tree.

        Raises:
            FilesystemError: If staging or replacing the destination fails
        """
        parent = self.destination.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{self.destination.name}-", dir=parent))
        except OSError as e:
            raise FilesystemError(f"Cannot prepare output directory: {e}", str(parent), e) from e

        try:
            for path, content in tree.items():
                target = staging / output_file_path(path)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(content)
        except FilesystemError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise FilesystemError(f"Cannot write output: {e}", str(self.destination), e) from e

        self._swap(staging)
        logger.info("Wrote %d file(s) to %s", len(tree), self.destination)

    def _swap(self, staging: Path) -> None:
        backup = None
        try:
            if self.destination.exists():
                backup = self.destination.with_name(f".{self.destination.name}-old-{uuid.uuid4().hex}")
                self.destination.rename(backup)
            staging.rename(self.destination)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            if backup is not None and not self.destination.exists():
                backup.rename(self.destination)
            raise FilesystemError(
                f"Cannot replace output directory: {e}", str(self.destination), e
            ) from e
        if backup is not None:
            shutil.rmtree(backup, ignore_errors=True)


class DatabaseWriter:
    """Stores the tree as rendered pages of one site, replacing its previous rows."""

    def __init__(self, database: Database, site: str = "default"):
        """
        Initialize writer.

        Args:
            database: Output database; tables must exist
            site: Site name the rows are stored under
        """
        self.database = database
        self.site = site

    def write(self, tree: Mapping[str, bytes]) -> None:
        """
        Replace the site's rendered pages in a single transaction.

        Raises:
            DatabaseError: If the transaction fails; previous rows are kept
        """
        try:
            with self.database.session() as session:
                repo = RenderedPageRepository(session)
                removed = repo.delete_by_site(self.site)
                repo.create_many(
                    [
                        RenderedPage(
                            id=str(uuid.uuid4()),
                            site=self.site,
                            path=path,
                            content=content,
                            checksum=hashlib.sha256(content).hexdigest(),
                            size=len(content),
                        )
                        for path, content in tree.items()
                    ]
                )
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to store output for site '{self.site}': {str(e)}", e) from e
        logger.info(
            "Stored %d page(s) for site %s (replaced %d)", len(tree), self.site, removed
        )
