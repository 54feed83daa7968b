"""Build pipeline: discover, parse, resolve, paginate and emit a site.

A build moves through ``DISCOVERING -> PARSING -> RESOLVING -> PAGINATING ->
EMITTING -> DONE``. Any failure moves it to ``FAILED`` and raises
:class:`~pagewright.exceptions.BuildError` carrying every collected error.
Output is only returned, and only handed to a writer, once every stage has
succeeded.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from pagewright.config import SiteConfig, get_settings
from pagewright.exceptions import (
    BuildError,
    CollectionAmbiguityError,
    FilesystemError,
    FrontMatterError,
    PermalinkCollisionError,
    PermalinkError,
    RenderError,
)
from pagewright.models.collection import Collection
from pagewright.models.document import Document
from pagewright.models.page import Page
from pagewright.services.collection_service import BuildWarning, CollectionResolver, Resolution
from pagewright.services.front_matter import FrontMatterParser
from pagewright.services.pagination_service import PaginationService
from pagewright.services.permalink_service import PermalinkResolver, check_collisions
from pagewright.services.render_service import (
    DocumentPostProcessor,
    DocumentRenderer,
    ListingRenderer,
    PaginationRenderer,
    PassthroughRenderer,
    SiteContext,
)
from pagewright.storage.source import SourceFile, SourceWalker
from pagewright.storage.writers import OutputWriter

logger = logging.getLogger(__name__)

UTF8_BOM = b"\xef\xbb\xbf"


class BuildState(str, Enum):
    """States of a site build."""

    DISCOVERING = "discovering"
    PARSING = "parsing"
    RESOLVING = "resolving"
    PAGINATING = "paginating"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildState.DONE, BuildState.FAILED)


@dataclass
class BuildResult:
    """Outcome of a successful build."""

    output: dict[str, bytes]
    documents: list[Document] = field(default_factory=list)
    collections: dict[str, Collection] = field(default_factory=dict)
    paginations: dict[str, list[Page]] = field(default_factory=dict)
    warnings: list[BuildWarning] = field(default_factory=list)
    sources: dict[str, str] = field(default_factory=dict)

    @property
    def paths(self) -> list[str]:
        """Output paths in sorted order."""
        return list(self.output)

    def document(self, path: str) -> Optional[Document]:
        """Get a document by source path."""
        for document in self.documents:
            if document.path == path:
                return document
        return None


class SiteBuilder:
    """Runs the content pipeline for one site configuration."""

    def __init__(
        self,
        config: SiteConfig,
        renderer: Optional[DocumentRenderer] = None,
        pagination_renderer: Optional[PaginationRenderer] = None,
        post_processors: Sequence[DocumentPostProcessor] = (),
        max_workers: Optional[int] = None,
    ):
        """
        Initialize builder.

        Args:
            config: Site configuration; each builder owns its own
            renderer: Produces document content (default: body passthrough)
            pagination_renderer: Produces pagination pages (default: HTML listing)
            post_processors: Applied in order to every rendered document
            max_workers: Parse worker pool size (default: settings, then CPU count)
        """
        self.config = config
        self.renderer = renderer or PassthroughRenderer()
        self.pagination_renderer = pagination_renderer or ListingRenderer()
        self.post_processors = list(post_processors)
        self.max_workers = max_workers or get_settings().max_workers or os.cpu_count() or 1

        self.parser = FrontMatterParser()
        self.resolver = CollectionResolver(config)
        self.permalinks = PermalinkResolver(config)
        self.paginator = PaginationService(config)

        self._state: Optional[BuildState] = None
        self.failed_from: Optional[BuildState] = None

    @property
    def state(self) -> Optional[BuildState]:
        """Current state; None before the first build."""
        return self._state

    def _transition(self, state: BuildState) -> None:
        if self._state is not None and self._state.is_terminal and state is not BuildState.DISCOVERING:
            raise RuntimeError(f"Cannot leave terminal state {self._state.value}")
        logger.info("Build state: %s", state.value)
        self._state = state

    def _failure(self, errors: Sequence[Exception]) -> BuildError:
        stage = self._state or BuildState.DISCOVERING
        self.failed_from = stage
        for error in errors:
            logger.error("%s: %s", stage.value, error)
        self._state = BuildState.FAILED
        return BuildError(stage.value, errors)

    def build(self, root: str | Path) -> BuildResult:
        """
        Build the site rooted at ``root``.

        Args:
            root: Site source directory

        Returns:
            Build result holding the complete output tree

        Raises:
            BuildError: If any stage fails; carries every collected error
        """
        self._state = None
        self.failed_from = None
        started = time.monotonic()
        try:
            result = self._build(Path(root))
        except BuildError:
            raise
        except Exception:
            if self._state is not None and not self._state.is_terminal:
                self.failed_from = self._state
                self._state = BuildState.FAILED
            logger.exception("Unexpected error during build")
            raise

        logger.info(
            "Built %d output file(s) with %d warning(s) in %.2fs",
            len(result.output),
            len(result.warnings),
            time.monotonic() - started,
        )
        return result

    def _build(self, root: Path) -> BuildResult:
        self._transition(BuildState.DISCOVERING)
        try:
            sources = self.discover(root)
        except FilesystemError as e:
            raise self._failure([e]) from e

        self._transition(BuildState.PARSING)
        documents, errors = self.parse(sources)
        if errors:
            raise self._failure(errors)

        self._transition(BuildState.RESOLVING)
        try:
            resolution = self.resolver.resolve(documents)
        except CollectionAmbiguityError as e:
            raise self._failure([e]) from e

        self._transition(BuildState.PAGINATING)
        paginations = self.paginator.paginate_all(resolution.collections)

        self._transition(BuildState.EMITTING)
        result = self.emit(resolution, paginations)

        self._transition(BuildState.DONE)
        return result

    def discover(self, root: Path) -> list[SourceFile]:
        """
        Enumerate every source file under ``root``.

        Raises:
            FilesystemError: If the root is missing or unreadable
        """
        sources = list(SourceWalker.for_config(root, self.config).walk())
        logger.info("Discovered %d source file(s) under %s", len(sources), root)
        return sources

    def parse(self, sources: Sequence[SourceFile]) -> tuple[list[Document], list[FrontMatterError]]:
        """
        Parse every source file on the worker pool.

        A failing file does not stop the others; all front-matter errors are
        returned together, ordered by path.

        Returns:
            Parsed documents in source order, and the collected errors
        """
        documents: list[Document] = []
        errors: list[FrontMatterError] = []
        if not sources:
            return documents, errors

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self.parse_source, source) for source in sources]
            for future in futures:
                try:
                    documents.append(future.result())
                except FrontMatterError as e:
                    errors.append(e)
        return documents, errors

    def parse_source(self, source: SourceFile) -> Document:
        """
        Turn one source file into a document.

        Files that do not open with a front-matter delimiter become static
        assets and are not decoded.

        Raises:
            FrontMatterError: If the front-matter is malformed, the file cannot
                              be decoded, or the ``date`` value is invalid
        """
        first_line = source.data.removeprefix(UTF8_BOM).split(b"\n", 1)[0].rstrip()
        if first_line != FrontMatterParser.DELIMITER.encode():
            return Document.static(source.path, source.data)

        try:
            text = source.data.decode(self.config.encoding)
        except UnicodeDecodeError as e:
            raise FrontMatterError(
                source.path, f"Cannot decode as {self.config.encoding}: {e.reason}"
            ) from e

        parsed = self.parser.parse(text, source.path)
        document = Document(
            path=source.path,
            metadata=parsed.metadata,
            body=parsed.body,
            has_front_matter=parsed.has_front_matter,
        )
        try:
            document.get_date(self.config.tzinfo)
        except ValueError as e:
            raise FrontMatterError(source.path, str(e), line=parsed.key_lines.get("date")) from e
        return document

    def emit(self, resolution: Resolution, paginations: dict[str, list[Page]]) -> BuildResult:
        """
        Resolve output paths, check them for collisions, then render.

        Raises:
            BuildError: On permalink errors, collisions or render failures;
                        no content is produced in that case
        """
        placed: list[tuple[Document, str]] = []
        permalink_errors: list[Exception] = []
        for document, collection in self._publishable(resolution):
            try:
                placed.append((document, self.permalinks.resolve(document, collection)))
            except PermalinkError as e:
                permalink_errors.append(e)

        statics: list[tuple[Document, str]] = []
        for document in resolution.static_files:
            try:
                path = self.permalinks.static_path(
                    document, resolution.collection_for_path(document.path)
                )
            except PermalinkError as e:
                permalink_errors.append(e)
                continue
            if path is not None:
                statics.append((document, path))

        if permalink_errors:
            raise self._failure(permalink_errors)

        first_pages = {pages[0].path: name for name, pages in paginations.items() if pages}
        hosts: dict[str, Document] = {}
        standalone: list[tuple[Document, str]] = []
        for document, path in placed:
            name = first_pages.get(path)
            if document.collection is None and name is not None and name not in hosts:
                hosts[name] = document
                continue
            standalone.append((document, path))

        claims = [(path, document.path) for document, path in standalone + statics]
        for name, pages in paginations.items():
            claims.extend((page.path, f"{name} page {page.index}") for page in pages)
        try:
            sources = check_collisions(claims)
        except PermalinkCollisionError as e:
            raise self._failure([e]) from e

        site = SiteContext(
            config=self.config,
            collections=resolution.collections,
            pages=tuple(resolution.pages),
            paginations=paginations,
            urls={document.path: path for document, path in standalone + statics},
        )

        output: dict[str, bytes] = {}
        emitted: dict[str, Document] = {}
        render_errors: list[Exception] = []
        for document, path in standalone:
            try:
                content = self.render_document(document, site).encode(self.config.encoding)
            except RenderError as e:
                render_errors.append(e)
                continue
            output[path] = content
            emitted[document.path] = document.with_updates(output_path=path, output_content=content)

        for document, path in statics:
            output[path] = document.body
            emitted[document.path] = document.with_updates(output_path=path, output_content=document.body)

        for name, pages in paginations.items():
            for page in pages:
                try:
                    content = self.pagination_renderer.render(page, site, hosts.get(name))
                except Exception as e:
                    render_errors.append(
                        RenderError(page.path, f"Rendering page {page.index} of '{name}' failed: {e}", e)
                    )
                    continue
                output[page.path] = content.encode(self.config.encoding)

        if render_errors:
            raise self._failure(render_errors)

        documents = [
            emitted.get(document.path, document)
            for document in resolution.documents + resolution.static_files
        ]
        return BuildResult(
            output=dict(sorted(output.items())),
            documents=documents,
            collections=resolution.collections,
            paginations=paginations,
            warnings=list(resolution.warnings),
            sources=dict(sorted(sources.items())),
        )

    @staticmethod
    def _publishable(resolution: Resolution) -> list[tuple[Document, Optional[Collection]]]:
        publishable = []
        for collection in resolution.collections.values():
            if collection.output:
                publishable.extend((document, collection) for document in collection)
        publishable.extend((document, None) for document in resolution.pages)
        return publishable

    def render_document(self, document: Document, site: SiteContext) -> str:
        """
        Render a document and apply the post-processors in order.

        Raises:
            RenderError: If the renderer or a post-processor fails
        """
        try:
            content = self.renderer.render(document, site)
            for processor in self.post_processors:
                content = processor.process(document, content)
        except Exception as e:
            raise RenderError(document.path, f"Rendering failed: {e}", e) from e
        return content


def build_site(
    root: str | Path,
    config: SiteConfig,
    writer: Optional[OutputWriter] = None,
    **builder_options,
) -> BuildResult:
    """
    Build a site and, if the build succeeds, hand the output to a writer.

    Args:
        root: Site source directory
        config: Site configuration
        writer: Optional output writer; never called for a failed build
        **builder_options: Passed to :class:`SiteBuilder`

    Returns:
        Build result

    Raises:
        BuildError: If the build fails
    """
    result = SiteBuilder(config, **builder_options).build(root)
    if writer is not None:
        writer.write(result.output)
    return result
