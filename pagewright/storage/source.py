"""Filesystem walker yielding the source files of a site."""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from pagewright.config import DEFAULT_CONFIG_FILE, SiteConfig
from pagewright.exceptions import FilesystemError

logger = logging.getLogger(__name__)

HIDDEN_PREFIXES = (".", "_")
BACKUP_SUFFIXES = ("~", "#")


@dataclass(frozen=True)
class SourceFile:
    """A source file: posix path relative to the site root plus raw bytes."""

    path: str
    data: bytes


class SourceWalker:
    """Enumerates site source files in sorted, deterministic order.

    Skipped entries:

    * anything matching an ``exclude`` pattern (matched against the relative
      path, its leading directories and the entry name);
    * dot-files, underscore-prefixed entries and editor backups, unless they
      match an ``include`` pattern or lie on the way to a kept directory
      (collection directories such as ``_posts``).
    """

    def __init__(
        self,
        root: str | Path,
        exclude: Iterable[str] = (),
        include: Iterable[str] = (),
        keep_dirs: Iterable[str] = (),
    ):
        """
        Initialize walker.

        Args:
            root: Site root directory
            exclude: Patterns of paths to skip
            include: Patterns of hidden paths to keep anyway
            keep_dirs: Directories (relative to root) always walked
        """
        self.root = Path(root)
        self.exclude = [pattern.strip("/") for pattern in exclude if pattern and pattern.strip("/")]
        self.include = [pattern.strip("/") for pattern in include if pattern and pattern.strip("/")]
        self.keep_dirs = [directory.strip("/") for directory in keep_dirs if directory.strip("/")]

    @classmethod
    def for_config(cls, root: str | Path, config: SiteConfig) -> "SourceWalker":
        """Create a walker honouring a site configuration."""
        exclude = list(config.exclude) + [config.destination, DEFAULT_CONFIG_FILE]
        keep_dirs = [collection.directory for collection in config.collections]
        return cls(root, exclude=exclude, include=config.include, keep_dirs=keep_dirs)

    def is_excluded(self, relative: str) -> bool:
        """Check whether a relative path is skipped."""
        name = relative.rsplit("/", 1)[-1]
        if self._matches(relative, name, self.include):
            return False
        if self._matches(relative, name, self.exclude):
            return True
        if name.startswith(HIDDEN_PREFIXES) or name.endswith(BACKUP_SUFFIXES):
            return not self._is_kept(relative)
        return False

    def _is_kept(self, relative: str) -> bool:
        for directory in self.keep_dirs:
            if relative == directory or relative.startswith(directory + "/"):
                return True
            if directory.startswith(relative + "/"):
                return True
        return False

    @staticmethod
    def _matches(relative: str, name: str, patterns: Iterable[str]) -> bool:
        for pattern in patterns:
            if relative == pattern or relative.startswith(pattern + "/"):
                return True
            if fnmatch.fnmatchcase(relative, pattern) or fnmatch.fnmatchcase(name, pattern):
                return True
        return False

    def paths(self) -> list[str]:
        """
        List every source path, sorted.

        Raises:
            FilesystemError: If the root is missing or a directory cannot be read
        """
        if not self.root.is_dir():
            raise FilesystemError(f"Source directory '{self.root}' does not exist", str(self.root))

        def on_error(error: OSError) -> None:
            raise FilesystemError(
                f"Cannot read directory '{error.filename}': {error.strerror}",
                error.filename,
                error,
            )

        found = []
        for directory, dirnames, filenames in os.walk(self.root, onerror=on_error):
            base = Path(directory).relative_to(self.root).as_posix()
            prefix = "" if base == "." else base + "/"
            dirnames[:] = sorted(name for name in dirnames if not self.is_excluded(prefix + name))
            for filename in filenames:
                relative = prefix + filename
                if not self.is_excluded(relative):
                    found.append(relative)
        return sorted(found)

    def walk(self) -> Iterator[SourceFile]:
        """
        Yield every source file with its contents, in sorted path order.

        Raises:
            FilesystemError: If the root is missing or a file cannot be read
        """
        for relative in self.paths():
            try:
                data = (self.root / relative).read_bytes()
            except OSError as e:
                raise FilesystemError(f"Cannot read '{relative}': {e}", relative, e) from e
            yield SourceFile(path=relative, data=data)
