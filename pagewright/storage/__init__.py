"""Storage layer: source discovery and output persistence."""

from pagewright.storage.database import Database
from pagewright.storage.repositories import RenderedPageRepository
from pagewright.storage.source import SourceFile, SourceWalker
from pagewright.storage.writers import (
    DatabaseWriter,
    DirectoryWriter,
    MemoryWriter,
    OutputWriter,
    output_file_path,
)

__all__ = [
    "Database",
    "RenderedPageRepository",
    "SourceFile",
    "SourceWalker",
    "OutputWriter",
    "MemoryWriter",
    "DirectoryWriter",
    "DatabaseWriter",
    "output_file_path",
]
