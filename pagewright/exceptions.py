"""Custom exceptions for site build operations."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence


class PagewrightError(Exception):
    """Base exception for pagewright errors."""

    pass


class ConfigurationError(PagewrightError):
    """Raised when site configuration cannot be loaded or is invalid."""

    def __init__(self, message: str, path: str | None = None):
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path


class FilesystemError(PagewrightError):
    """Raised when the source tree or output destination cannot be accessed."""

    def __init__(self, message: str, path: str | None = None, original_error: Exception | None = None):
        super().__init__(message)
        self.path = path
        self.original_error = original_error


class DatabaseError(PagewrightError):
    """Raised when an output database operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class FrontMatterError(PagewrightError):
    """Raised when a document's front-matter block is malformed."""

    def __init__(self, path: str, message: str, line: int | None = None):
        location = f"{path}:{line}" if line is not None else path
        super().__init__(f"{location}: {message}")
        self.path = path
        self.line = line
        self.reason = message


class CollectionAmbiguityError(PagewrightError):
    """Raised when documents match more than one collection equally well."""

    def __init__(self, ambiguities: Mapping[str, Sequence[str]]):
        self.ambiguities = {path: list(names) for path, names in ambiguities.items()}
        details = "; ".join(
            f"{path} matches {', '.join(names)}" for path, names in self.ambiguities.items()
        )
        super().__init__(f"Ambiguous collection membership: {details}")

    @property
    def paths(self) -> list[str]:
        """Paths of every ambiguous document."""
        return list(self.ambiguities)


class PermalinkError(PagewrightError):
    """Raised when a permalink pattern cannot be resolved for a document."""

    def __init__(self, message: str, path: str | None = None, placeholder: str | None = None):
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path
        self.placeholder = placeholder


class PermalinkCollisionError(PagewrightError):
    """Raised when two or more sources resolve to the same output path."""

    def __init__(self, collisions: Mapping[str, Iterable[str]]):
        self.collisions = {path: sorted(sources) for path, sources in collisions.items()}
        details = "; ".join(
            f"{path} <- {', '.join(sources)}" for path, sources in self.collisions.items()
        )
        super().__init__(f"Permalink collision: {details}")


class RenderError(PagewrightError):
    """Raised when a renderer or post-processor fails for a document."""

    def __init__(self, path: str, message: str, original_error: Exception | None = None):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.original_error = original_error


class BuildError(PagewrightError):
    """Raised when a build terminates in the failed state.

    Carries the stage that failed and every error collected by it.
    """

    def __init__(self, stage: str, errors: Sequence[Exception]):
        self.stage = stage
        self.errors = list(errors)
        summary = f"Build failed during {stage} with {len(self.errors)} error(s)"
        if self.errors:
            summary += ": " + "; ".join(str(error) for error in self.errors)
        super().__init__(summary)
