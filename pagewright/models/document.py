"""Document model for content units discovered in a site tree."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pagewright.models.values import (
    DateValue,
    FrontMatterValue,
    NullValue,
    StringValue,
    unwrap,
    wrap_mapping,
)

FILENAME_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-(.+)$")
DATE_STRING_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[ T](?P<time>\d{1,2}:\d{2}(?::\d{2}(?:\.\d{1,6})?)?))?"
    r"\s*(?P<tz>Z|[+-]\d{2}:?\d{2})?$"
)
SLUG_SEPARATOR_RE = re.compile(r"[\W_]+")


def slugify(text: str) -> str:
    """Lowercase text and collapse every run of non-alphanumerics to one hyphen."""
    return SLUG_SEPARATOR_RE.sub("-", text.lower()).strip("-")


def _parse_offset(value: str) -> tzinfo:
    if value == "Z":
        return timezone.utc
    sign = -1 if value[0] == "-" else 1
    digits = value[1:].replace(":", "")
    offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return timezone(sign * offset)


def parse_date(value: Any, tz: tzinfo = timezone.utc) -> datetime:
    """
    Parse a front-matter date into an aware datetime in the given timezone.

    Naive values are interpreted in ``tz``; values carrying an offset are
    converted to it. Bare dates mean midnight.

    Args:
        value: ``date``, ``datetime`` or string such as ``2024-04-30 10:00:00 +0800``
        tz: Site timezone

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the value is not a recognizable date
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    elif isinstance(value, str):
        match = DATE_STRING_RE.match(value.strip())
        if match is None:
            raise ValueError(f"Invalid date '{value}'")
        try:
            day = date.fromisoformat(match.group("date"))
            clock = time()
            if match.group("time"):
                raw_time = match.group("time")
                if len(raw_time.split(":")[0]) == 1:
                    raw_time = "0" + raw_time
                clock = time.fromisoformat(raw_time)
        except ValueError as e:
            raise ValueError(f"Invalid date '{value}'") from e
        parsed = datetime.combine(day, clock)
        if match.group("tz"):
            parsed = parsed.replace(tzinfo=_parse_offset(match.group("tz")))
    else:
        raise ValueError(f"Invalid date {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


@dataclass(frozen=True, eq=False)
class Document:
    """A content unit: front-matter plus body, identified by its source path.

    Documents are immutable. The build pipeline derives updated copies
    (merged defaults, collection, output path and content) with
    :meth:`with_updates`.
    """

    path: str
    metadata: Mapping[str, FrontMatterValue] = field(default_factory=dict)
    body: str | bytes = ""
    has_front_matter: bool = True
    collection: Optional[str] = None
    output_path: Optional[str] = None
    output_content: Optional[bytes] = None

    def __post_init__(self) -> None:
        path = PurePosixPath(str(self.path).replace("\\", "/")).as_posix().lstrip("/")
        if not path or path == ".":
            raise ValueError("Document path cannot be empty")
        object.__setattr__(self, "path", path)
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def static(cls, path: str, data: bytes) -> "Document":
        """Create a static asset: raw bytes, no front-matter."""
        return cls(path=path, metadata={}, body=data, has_front_matter=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    def __repr__(self) -> str:
        return f"<Document(path={self.path!r}, collection={self.collection!r})>"

    @property
    def is_static(self) -> bool:
        """Static assets are copied verbatim and carry no metadata."""
        return not self.has_front_matter

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def stem(self) -> str:
        return PurePosixPath(self.path).stem

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix

    @property
    def directory(self) -> str:
        """Parent directory of the source path ("" at the site root)."""
        parent = PurePosixPath(self.path).parent.as_posix()
        return "" if parent == "." else parent

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a front-matter value as plain Python data.

        Args:
            key: Front-matter key
            default: Value returned when the key is absent

        Returns:
            The unwrapped value, or ``default``
        """
        value = self.metadata.get(key)
        if value is None:
            return default
        return unwrap(value)

    def get_value(self, key: str) -> Optional[FrontMatterValue]:
        """Get the tagged front-matter value for a key, or None."""
        return self.metadata.get(key)

    def filename_date(self) -> Optional[date]:
        """Date encoded as a ``YYYY-MM-DD-`` filename prefix, if any."""
        match = FILENAME_DATE_RE.match(self.name)
        if match is None:
            return None
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None

    def get_date(self, tz: tzinfo = timezone.utc) -> Optional[datetime]:
        """
        Get the document date in the given timezone.

        An explicit ``date`` front-matter value wins; otherwise the date is
        derived from the filename prefix. Documents with neither have no date.

        Args:
            tz: Site timezone

        Returns:
            Aware datetime, or None if the document is undated

        Raises:
            ValueError: If an explicit ``date`` value cannot be parsed
        """
        value = self.metadata.get("date")
        if isinstance(value, (DateValue, StringValue)):
            return parse_date(value.value, tz)
        if value is not None and not isinstance(value, NullValue):
            raise ValueError(f"Invalid date {unwrap(value)!r}")

        derived = self.filename_date()
        if derived is None:
            return None
        return parse_date(derived, tz)

    @property
    def date(self) -> Optional[datetime]:
        return self.get_date()

    @property
    def basename_slug(self) -> str:
        """Slugified filename without extension and date prefix."""
        stem = self.stem
        match = FILENAME_DATE_RE.match(stem)
        if match is not None and self.filename_date() is not None:
            stem = match.group(4)
        return slugify(stem)

    @property
    def title(self) -> str:
        title = self.get("title")
        if title is None or title == "":
            return self.basename_slug
        return str(title)

    @property
    def slug(self) -> str:
        slug = self.get("slug")
        if slug is None or slug == "":
            return self.basename_slug
        return str(slug)

    def with_defaults(self, defaults: Mapping[str, Any]) -> "Document":
        """Return a copy with ``defaults`` merged beneath the front-matter."""
        merged = {**wrap_mapping(defaults), **self.metadata}
        return replace(self, metadata=merged)

    def with_updates(self, **changes: Any) -> "Document":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
