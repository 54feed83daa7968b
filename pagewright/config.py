"""Configuration management for pagewright.

Two layers of configuration exist:

* Runtime settings (:class:`Settings`) describe how the tool itself runs:
  logging, worker pool size and the output database. They can be overridden
  via environment variables or a ``.env`` file.
* Site configuration (:class:`SiteConfig`) describes one site: collections,
  defaults, permalinks and pagination. It is loaded from the site's
  ``_config.yml`` and passed explicitly to every build, so independent builds
  can run side by side with different configurations.

Environment Variables:
    LOG_LEVEL: Logging level (default: INFO)
    LOG_FORMAT: Logging format, ``text`` or ``json`` (default: text)
    MAX_WORKERS: Size of the parse worker pool (default: number of CPUs)
    DATABASE_URL: Output database URL used by the database writer
                  (default: sqlite:///./pagewright.db)
    DB_POOL_SIZE: Connection pool size (default: 5)
    DB_MAX_OVERFLOW: Maximum overflow connections (default: 10)
    DB_POOL_TIMEOUT: Connection timeout in seconds (default: 30)
    SQL_ECHO: Enable SQL query logging for debugging (default: false)
    ENVIRONMENT: Environment name (default: development)
    DEBUG: Enable debug mode (default: false)
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagewright.exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "_config.yml"


class Settings(BaseSettings):
    """Runtime settings for pagewright.

    All configuration values can be set via environment variables or .env file.
    Defaults are provided for development convenience.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Build configuration
    max_workers: Optional[int] = Field(default=None, gt=0)

    # Output database configuration
    database_url: str = "sqlite:///./pagewright.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    sql_echo: bool = False

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "text"

    # Environment configuration
    environment: str = "development"
    debug: bool = False

    def is_postgresql(self) -> bool:
        """Check if the output database is PostgreSQL."""
        return self.database_url.startswith("postgresql")

    def is_sqlite(self) -> bool:
        """Check if the output database is SQLite."""
        return self.database_url.startswith("sqlite")

    def get_database_url(self) -> str:
        """Get the output database URL."""
        return self.database_url


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    return Settings()


def _check_default_date(values: dict[str, Any]) -> dict[str, Any]:
    """Reject a default ``date`` that no document could use."""
    from pagewright.models.document import parse_date

    if values.get("date") is not None:
        parse_date(values["date"])
    return values


class DefaultScope(BaseModel):
    """Selects the documents a defaults entry applies to."""

    path: str = ""
    type: Optional[str] = None

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip("/")


class DefaultsEntry(BaseModel):
    """A scoped set of default front-matter values."""

    scope: DefaultScope = Field(default_factory=DefaultScope)
    values: dict[str, Any] = Field(default_factory=dict)

    @field_validator("values")
    @classmethod
    def _valid_date(cls, value: dict[str, Any]) -> dict[str, Any]:
        return _check_default_date(value)


class CollectionConfig(BaseModel):
    """Configuration of one named collection.

    Unknown keys (title, description, feature_text...) are kept and exposed
    through :attr:`metadata`.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    path: Optional[str] = None
    output: Optional[bool] = None
    permalink: Optional[str] = None
    sort_by: Optional[Literal["date", "discovery"]] = None
    paginate: Optional[int] = Field(default=None, gt=0)
    paginate_path: Optional[str] = None
    defaults: dict[str, Any] = Field(default_factory=dict)

    @field_validator("defaults")
    @classmethod
    def _valid_date(cls, value: dict[str, Any]) -> dict[str, Any]:
        return _check_default_date(value)

    @property
    def directory(self) -> str:
        """Directory prefix, relative to the site root, holding the members."""
        if self.path is None:
            return f"_{self.name}"
        return self.path.strip("/")

    @property
    def outputs(self) -> bool:
        """Whether members are rendered individually."""
        if self.output is None:
            return self.name == "posts"
        return self.output

    @property
    def date_ordered(self) -> bool:
        """Whether members are ordered by date, newest first."""
        if self.sort_by is None:
            return self.name == "posts"
        return self.sort_by == "date"

    @property
    def metadata(self) -> dict[str, Any]:
        """Free-form collection settings not interpreted by the pipeline."""
        return dict(self.model_extra or {})


class SiteConfig(BaseModel):
    """Site configuration, usually loaded from ``_config.yml``.

    Keys the pipeline does not interpret (navigation, social links...) are
    kept as site data and available to renderers via :attr:`site_data`.
    """

    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    url: Optional[str] = None
    baseurl: str = ""
    permalink: str = "date"
    timezone: str = "UTC"
    encoding: str = "utf-8"
    destination: str = "_site"
    exclude: list[str] = Field(default_factory=list)
    include: list[str] = Field(default_factory=list)
    collections: list[CollectionConfig] = Field(default_factory=list)
    defaults: list[DefaultsEntry] = Field(default_factory=list)
    paginate: Optional[int] = Field(default=None, gt=0)
    paginate_path: str = "/page:num"

    @field_validator("collections", mode="before")
    @classmethod
    def _collections_from_mapping(cls, value: Any) -> Any:
        """Accept Jekyll's mapping form (``name: {settings}``) and list of names."""
        if value is None:
            return []
        if isinstance(value, dict):
            return [{**(settings or {}), "name": name} for name, settings in value.items()]
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value

    @field_validator("defaults", "exclude", "include", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("baseurl", mode="before")
    @classmethod
    def _normalize_baseurl(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).rstrip("/")

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{value}'") from e
        return value

    @model_validator(mode="after")
    def _ensure_posts_collection(self) -> "SiteConfig":
        names = [collection.name for collection in self.collections]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate collection names: {', '.join(duplicates)}")
        if "posts" not in names:
            self.collections.append(CollectionConfig(name="posts"))
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        """Site timezone used to interpret document dates."""
        return ZoneInfo(self.timezone)

    @property
    def site_data(self) -> dict[str, Any]:
        """Configuration keys not interpreted by the pipeline."""
        return dict(self.model_extra or {})

    def get_collection(self, name: str) -> Optional[CollectionConfig]:
        """Get a collection configuration by name."""
        for collection in self.collections:
            if collection.name == name:
                return collection
        return None

    def pagination_for(self, collection: CollectionConfig) -> tuple[Optional[int], Optional[str]]:
        """Get the (page size, path template) pagination settings of a collection.

        Site-level ``paginate`` / ``paginate_path`` apply to ``posts`` unless
        the collection sets its own.
        """
        per_page = collection.paginate
        path = collection.paginate_path
        if collection.name == "posts":
            per_page = per_page or self.paginate
            path = path or self.paginate_path
        if per_page is None:
            return None, None
        return per_page, path or f"/{collection.name}/page:num"


def parse_site_config(data: Any, source: str | None = None) -> SiteConfig:
    """
    Build a site configuration from already-parsed data.

    Args:
        data: Mapping parsed from a configuration file (None means empty)
        source: Optional file name used in error messages

    Returns:
        Validated site configuration

    Raises:
        ConfigurationError: If the data is not a mapping or fails validation
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping", source)
    try:
        return SiteConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", source) from e


def load_site_config(path: str | Path, missing_ok: bool = False) -> SiteConfig:
    """
    Load a site configuration file.

    Args:
        path: Path to a YAML configuration file
        missing_ok: If True, a missing file yields the default configuration

    Returns:
        Validated site configuration

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML,
                            or fails validation
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        if missing_ok:
            return SiteConfig()
        raise ConfigurationError("Configuration file not found", str(path)) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration: {e}", str(path)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed YAML: {e}", str(path)) from e

    return parse_site_config(data, str(path))
