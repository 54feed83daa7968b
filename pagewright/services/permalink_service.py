"""Permalink resolution: compute document output paths from patterns."""

from __future__ import annotations

import re
from collections import defaultdict
from typing import Iterable, Mapping, Optional

from pagewright.config import SiteConfig
from pagewright.exceptions import PermalinkCollisionError, PermalinkError
from pagewright.models.collection import Collection
from pagewright.models.document import Document, slugify
from pagewright.models.values import StringValue
from pagewright.storage.writers import output_file_path

PERMALINK_STYLES = {
    "date": "/:year/:month/:day/:title:output_ext",
    "pretty": "/:year/:month/:day/:title/",
    "ordinal": "/:year/:y_day/:title:output_ext",
    "none": "/:title:output_ext",
}
COLLECTION_PERMALINK = "/:collection/:path:output_ext"

DATE_PLACEHOLDERS = frozenset(
    {"year", "month", "day", "i_month", "i_day", "short_year", "y_day", "hour", "minute", "second"}
)
PLACEHOLDERS = DATE_PLACEHOLDERS | {"title", "slug", "name", "path", "collection", "output_ext"}

MARKUP_EXTENSIONS = frozenset({".md", ".markdown", ".mkd", ".mkdn", ".html", ".htm"})


def output_extension(extension: str) -> str:
    """Extension of the rendered output for a source extension."""
    if extension.lower() in MARKUP_EXTENSIONS:
        return ".html"
    return extension


def normalize_output_path(path: str, source: Optional[str] = None) -> str:
    """
    Normalize an output path: one leading separator, no empty or ``.`` segments.

    A trailing separator is kept; it marks a directory-style permalink.

    Raises:
        PermalinkError: If the path contains a ``..`` segment
    """
    trailing = path.endswith("/")
    segments = [segment for segment in path.split("/") if segment and segment != "."]
    if ".." in segments:
        raise PermalinkError(f"Output path '{path}' escapes the site root", source)
    normalized = "/" + "/".join(segments)
    if trailing and normalized != "/":
        normalized += "/"
    return normalized


class PermalinkPattern:
    """A permalink template with ``:name`` placeholders.

    Named styles (``date``, ``pretty``, ``ordinal``, ``none``) expand to their
    templates.
    """

    PLACEHOLDER_RE = re.compile(r":([a-z_]+)")

    def __init__(self, template: str):
        """
        Initialize pattern.

        Args:
            template: Template string or named style

        Raises:
            PermalinkError: If the template uses an unknown placeholder
        """
        self.template = PERMALINK_STYLES.get(template, template)
        self.placeholders = tuple(self.PLACEHOLDER_RE.findall(self.template))
        for placeholder in self.placeholders:
            if placeholder not in PLACEHOLDERS:
                raise PermalinkError(
                    f"Unknown placeholder ':{placeholder}' in permalink '{template}'",
                    placeholder=placeholder,
                )

    def __repr__(self) -> str:
        return f"<PermalinkPattern({self.template!r})>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermalinkPattern):
            return NotImplemented
        return self.template == other.template

    def __hash__(self) -> int:
        return hash(self.template)

    @property
    def uses_date(self) -> bool:
        return any(placeholder in DATE_PLACEHOLDERS for placeholder in self.placeholders)

    def expand(self, values: Mapping[str, str]) -> str:
        """Substitute every placeholder from ``values``."""
        return self.PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], self.template)


class PermalinkResolver:
    """Resolves output paths for documents and static files."""

    def __init__(self, config: SiteConfig):
        """
        Initialize resolver with the site configuration.

        Args:
            config: Site configuration (site permalink and timezone)
        """
        self.config = config
        self.tz = config.tzinfo
        self._patterns: dict[str, PermalinkPattern] = {}

    def pattern(self, template: str) -> PermalinkPattern:
        """Get a (cached) pattern for a template."""
        if template not in self._patterns:
            self._patterns[template] = PermalinkPattern(template)
        return self._patterns[template]

    def pattern_for(
        self, document: Document, collection: Optional[Collection] = None
    ) -> Optional[PermalinkPattern]:
        """
        Choose the permalink pattern for a document.

        Front-matter ``permalink`` wins, then the collection's permalink, then
        the site permalink for posts or the generic collection pattern.
        Pages without an explicit permalink have no pattern.
        """
        explicit = document.get_value("permalink")
        if isinstance(explicit, StringValue) and explicit.value:
            return self.pattern(explicit.value)
        if collection is None:
            return None
        if collection.permalink:
            return self.pattern(collection.permalink)
        if collection.name == "posts":
            return self.pattern(self.config.permalink)
        return self.pattern(COLLECTION_PERMALINK)

    def resolve(self, document: Document, collection: Optional[Collection] = None) -> str:
        """
        Resolve the output path of a processed document.

        Args:
            document: Resolved document
            collection: The document's collection, if any

        Returns:
            Normalized output path

        Raises:
            PermalinkError: If a placeholder cannot be resolved
        """
        pattern = self.pattern_for(document, collection)
        if pattern is None:
            return self.page_path(document)
        return self.resolve_pattern(pattern, document, collection)

    def resolve_pattern(
        self,
        pattern: PermalinkPattern,
        document: Document,
        collection: Optional[Collection] = None,
    ) -> str:
        """
        Substitute every placeholder of ``pattern`` from ``document``.

        Raises:
            PermalinkError: If any placeholder resolves to an empty string
        """
        values = {
            placeholder: self.placeholder_value(placeholder, document, collection)
            for placeholder in set(pattern.placeholders)
        }
        return normalize_output_path(pattern.expand(values), document.path)

    def placeholder_value(
        self, placeholder: str, document: Document, collection: Optional[Collection] = None
    ) -> str:
        """
        Value of one placeholder for a document.

        Raises:
            PermalinkError: If the value is empty or the document lacks a date
                            for a date placeholder
        """
        if placeholder in DATE_PLACEHOLDERS:
            value = self._date_value(placeholder, document)
        elif placeholder == "title":
            value = slugify(document.title)
        elif placeholder == "slug":
            value = slugify(document.slug)
        elif placeholder == "name":
            value = document.stem
        elif placeholder == "path":
            relative = collection.relative_path(document.path) if collection else document.path
            value = relative[: -len(document.extension)] if document.extension else relative
        elif placeholder == "collection":
            value = collection.name if collection else ""
        elif placeholder == "output_ext":
            value = output_extension(document.extension)
        else:
            raise PermalinkError(
                f"Unknown placeholder ':{placeholder}'", document.path, placeholder
            )

        if not value:
            raise PermalinkError(
                f"Placeholder ':{placeholder}' resolves to an empty value",
                document.path,
                placeholder,
            )
        return value

    def _date_value(self, placeholder: str, document: Document) -> str:
        moment = document.get_date(self.tz)
        if moment is None:
            raise PermalinkError(
                f"Placeholder ':{placeholder}' requires a document date",
                document.path,
                placeholder,
            )
        if placeholder == "year":
            return f"{moment.year:04d}"
        if placeholder == "month":
            return f"{moment.month:02d}"
        if placeholder == "day":
            return f"{moment.day:02d}"
        if placeholder == "i_month":
            return str(moment.month)
        if placeholder == "i_day":
            return str(moment.day)
        if placeholder == "short_year":
            return f"{moment.year % 100:02d}"
        if placeholder == "y_day":
            return f"{moment.timetuple().tm_yday:03d}"
        if placeholder == "hour":
            return f"{moment.hour:02d}"
        if placeholder == "minute":
            return f"{moment.minute:02d}"
        return f"{moment.second:02d}"

    def page_path(self, document: Document) -> str:
        """Default output path of a page: its source path, ``index`` files as directories."""
        extension = output_extension(document.extension)
        directory = document.directory
        if document.stem == "index" and extension == ".html":
            return normalize_output_path(f"/{directory}/", document.path)
        return normalize_output_path(f"/{directory}/{document.stem}{extension}", document.path)

    def static_path(self, document: Document, collection: Optional[Collection] = None) -> Optional[str]:
        """
        Output path of a static file.

        Static files inside a collection directory are published under the
        collection name, or not at all when the collection does not output.
        """
        if collection is None:
            return normalize_output_path(document.path, document.path)
        if not collection.output:
            return None
        return normalize_output_path(
            f"{collection.name}/{collection.relative_path(document.path)}", document.path
        )


def check_collisions(claims: Iterable[tuple[str, str]]) -> dict[str, str]:
    """
    Check that every output file is claimed by exactly one source.

    Claims are compared by the file they are written to, so ``/about/`` and
    ``/about/index.html`` collide. A file that is also a leading directory of
    another claim (``/blog`` and ``/blog/x.html``) is a collision too.
    Collisions are reported under the smallest output path involved.

    Args:
        claims: ``(output path, source)`` pairs for the complete build

    Returns:
        Mapping of output path to its source

    Raises:
        PermalinkCollisionError: Listing every conflicting path and its sources
    """
    owners: dict[str, list[tuple[str, str]]] = defaultdict(list)
    for path, source in claims:
        owners[output_file_path(path)].append((path, source))

    conflicts: list[list[tuple[str, str]]] = [
        entries for entries in owners.values() if len(entries) > 1
    ]
    for file_path, entries in owners.items():
        parts = file_path.split("/")
        for depth in range(1, len(parts)):
            directory = "/".join(parts[:depth])
            if directory in owners:
                conflicts.append(owners[directory] + entries)

    if conflicts:
        collisions: dict[str, set[str]] = defaultdict(set)
        for entries in conflicts:
            path = min(path for path, _ in entries)
            collisions[path].update(source for _, source in entries)
        raise PermalinkCollisionError(dict(sorted(collisions.items())))
    return {path: source for entries in owners.values() for path, source in entries}
