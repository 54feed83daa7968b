"""Tests for the build pipeline."""

import pytest

pytestmark = pytest.mark.unit

from pagewright.exceptions import (
    BuildError,
    CollectionAmbiguityError,
    ConfigurationError,
    FilesystemError,
    FrontMatterError,
    PermalinkCollisionError,
    PermalinkError,
    RenderError,
)
from pagewright.services.build_service import BuildState, SiteBuilder, build_site
from pagewright.storage.writers import MemoryWriter


def post(title, body="Body"):
    return f"---\ntitle: {title}\n---\n{body}\n"


class UpperRenderer:
    """Renders the body in upper case."""

    def render(self, document, site):
        return document.body.upper()


class FailingRenderer:
    """Fails for one document."""

    def render(self, document, site):
        if document.stem == "broken":
            raise RuntimeError("template exploded")
        return document.body


class Suffix:
    """Appends a marker."""

    def __init__(self, marker):
        self.marker = marker

    def process(self, document, content):
        return content + self.marker


class TestBuild:
    """Test successful builds."""

    def test_two_posts_example(self, write_site, make_config):
        """Test dated posts under the pretty pattern, newest first."""
        root = write_site(
            {
                "_posts/2024-04-30-hello-world.md": post("Hello World"),
                "_posts/2022-07-07-first-steps.md": post("First Steps"),
            }
        )
        builder = SiteBuilder(make_config(permalink="/:year/:month/:day/:title/"))

        result = builder.build(root)

        assert result.paths == ["/2022/07/07/first-steps/", "/2024/04/30/hello-world/"]
        assert [document.path for document in result.collections["posts"]] == [
            "_posts/2024-04-30-hello-world.md",
            "_posts/2022-07-07-first-steps.md",
        ]
        assert builder.state is BuildState.DONE
        assert builder.failed_from is None

    def test_output_content_and_documents(self, write_site, site_config):
        """Test bodies are emitted and documents carry their output."""
        root = write_site({"about.md": post("About", "Hi there"), "css/site.css": b"body {}"})

        result = SiteBuilder(site_config).build(root)

        assert result.output == {"/about.html": b"Hi there\n", "/css/site.css": b"body {}"}
        about = result.document("about.md")
        assert about.output_path == "/about.html"
        assert about.output_content == b"Hi there\n"
        assert result.sources == {"/about.html": "about.md", "/css/site.css": "css/site.css"}

    def test_static_files_copied_verbatim(self, write_site, site_config):
        """Test files without front-matter are not decoded."""
        data = b"\xff\xfe\x00binary"
        root = write_site({"img/logo.bin": data, "notes.txt": "no front matter"})

        result = SiteBuilder(site_config).build(root)

        assert result.output["/img/logo.bin"] == data
        assert result.output["/notes.txt"] == b"no front matter"

    def test_output_sorted_by_path(self, write_site, site_config):
        """Test output keys are in sorted order."""
        root = write_site({"z.md": post("Z"), "a.md": post("A"), "m/index.md": post("M")})

        result = SiteBuilder(site_config).build(root)

        assert list(result.output) == sorted(result.output)

    def test_renderer_and_post_processors(self, write_site, site_config):
        """Test post-processors run in order after rendering."""
        root = write_site({"about.md": post("About", "hi")})
        builder = SiteBuilder(site_config, renderer=UpperRenderer(), post_processors=[Suffix("1"), Suffix("2")])

        result = builder.build(root)

        assert result.output["/about.html"] == b"HI\n12"

    def test_unpublished_collection(self, write_site, make_config):
        """Test members of non-outputting collections are resolved but not emitted."""
        root = write_site({"_authors/ada.md": post("Ada"), "index.md": post("Home")})
        config = make_config(collections={"authors": {"output": False}})

        result = SiteBuilder(config).build(root)

        assert result.paths == ["/"]
        assert len(result.collections["authors"]) == 1
        assert result.document("_authors/ada.md").output_path is None

    def test_undated_post_warning(self, write_site, site_config):
        """Test undated posts are reported but do not fail the build."""
        root = write_site({"_posts/draft.md": post("Draft")})

        result = SiteBuilder(site_config).build(root)

        assert result.output == {}
        assert [warning.path for warning in result.warnings] == ["_posts/draft.md"]

    def test_date_from_scoped_defaults(self, write_site, make_config):
        """Test a post without a date of its own takes the default date."""
        root = write_site({"_posts/undated.md": post("Undated")})
        config = make_config(defaults=[{"scope": {"type": "posts"}, "values": {"date": "2024-02-03"}}])

        result = SiteBuilder(config).build(root)

        assert result.paths == ["/2024/02/03/undated.html"]
        assert result.warnings == []

    def test_invalid_default_date_rejected(self, write_site, make_config):
        """Test a bad default date fails before any document is built."""
        write_site({"_posts/undated.md": post("Undated")})

        with pytest.raises(ConfigurationError) as exc_info:
            make_config(defaults=[{"scope": {"type": "posts"}, "values": {"date": "soon"}}])

        assert "Invalid date 'soon'" in str(exc_info.value)

    def test_rebuild_is_deterministic(self, write_site, make_config):
        """Test identical input gives identical order and output."""
        root = write_site(
            {f"_posts/2024-01-0{day % 3 + 1}-post-{day}.md": post(f"Post {day}") for day in range(6)}
        )
        config = make_config(paginate=2)

        first = SiteBuilder(config, max_workers=4).build(root)
        second = SiteBuilder(config, max_workers=1).build(root)

        assert first.output == second.output
        assert [d.path for d in first.collections["posts"]] == [d.path for d in second.collections["posts"]]


class TestPagination:
    """Test pagination pages in the build output."""

    def test_pages_and_host(self, write_site, make_config):
        """Test the host page's body leads every pagination page."""
        root = write_site(
            {
                "index.html": "---\ntitle: Home\n---\n<h1>Home</h1>\n",
                "_posts/2024-01-01-a.md": post("Post A"),
                "_posts/2024-01-02-b.md": post("Post B"),
                "_posts/2024-01-03-c.md": post("Post C & Co"),
            }
        )
        config = make_config(paginate=2, baseurl="/site")

        result = SiteBuilder(config).build(root)

        assert "/" in result.output
        assert "/page2/" in result.output
        assert result.sources["/"] == "posts page 1"
        first = result.output["/"].decode()
        assert first.startswith("<h1>Home</h1>")
        assert '<a href="/site/2024/01/03/post-c-co.html">Post C &amp; Co</a>' in first
        assert '<a rel="next" href="/site/page2/">Next</a>' in first
        assert "Page 1 of 2" in first
        second = result.output["/page2/"].decode()
        assert "Post A" in second
        assert '<a rel="prev" href="/site/">Previous</a>' in second
        assert len(result.paginations["posts"]) == 2

    def test_without_host(self, write_site, make_config):
        """Test pagination pages are emitted without a host page."""
        root = write_site({"_posts/2024-01-01-a.md": post("A")})

        result = SiteBuilder(make_config(paginate=5)).build(root)

        assert result.output["/"].decode().startswith("<ul>")


class TestFailures:
    """Test builds that end in the failed state."""

    def test_missing_root(self, tmp_path, site_config):
        """Test a missing source directory fails discovery."""
        builder = SiteBuilder(site_config)

        with pytest.raises(BuildError) as exc_info:
            builder.build(tmp_path / "missing")

        assert exc_info.value.stage == "discovering"
        assert isinstance(exc_info.value.errors[0], FilesystemError)
        assert builder.state is BuildState.FAILED
        assert builder.failed_from is BuildState.DISCOVERING

    def test_front_matter_errors_collected(self, write_site, site_config):
        """Test every malformed file is reported, ordered by path."""
        root = write_site(
            {
                "z.md": "---\ntitle: [bad\n---\n",
                "a.md": "---\ntitle: A\ntitle: B\n---\n",
                "ok.md": post("Fine"),
            }
        )
        builder = SiteBuilder(site_config, max_workers=2)

        with pytest.raises(BuildError) as exc_info:
            builder.build(root)

        assert exc_info.value.stage == "parsing"
        assert [error.path for error in exc_info.value.errors] == ["a.md", "z.md"]
        assert all(isinstance(error, FrontMatterError) for error in exc_info.value.errors)
        assert builder.failed_from is BuildState.PARSING

    def test_invalid_date_reports_line(self, write_site, site_config):
        """Test an unparseable date is located at its key."""
        root = write_site({"_posts/a.md": "---\ntitle: A\ndate: someday\n---\n"})

        with pytest.raises(BuildError) as exc_info:
            SiteBuilder(site_config).build(root)

        error = exc_info.value.errors[0]
        assert isinstance(error, FrontMatterError)
        assert error.line == 3

    def test_undecodable_text(self, write_site, site_config):
        """Test a front-matter file that is not valid text."""
        root = write_site({"a.md": b"---\ntitle: \xff\xfe\n---\n"})

        with pytest.raises(BuildError) as exc_info:
            SiteBuilder(site_config).build(root)

        assert exc_info.value.errors[0].path == "a.md"

    def test_ambiguity(self, write_site, make_config):
        """Test ambiguous membership fails resolution."""
        root = write_site({"docs/a.md": post("A")})
        config = make_config(collections={"one": {"path": "docs"}, "two": {"path": "docs"}})
        builder = SiteBuilder(config)

        with pytest.raises(BuildError) as exc_info:
            builder.build(root)

        assert exc_info.value.stage == "resolving"
        assert isinstance(exc_info.value.errors[0], CollectionAmbiguityError)

    def test_collision_writes_nothing(self, write_site, site_config):
        """Test two sources claiming one path fail without writing."""
        root = write_site({"about.md": post("A"), "about.html": post("B")})
        writer = MemoryWriter()

        with pytest.raises(BuildError) as exc_info:
            build_site(root, site_config, writer=writer)

        error = exc_info.value.errors[0]
        assert exc_info.value.stage == "emitting"
        assert isinstance(error, PermalinkCollisionError)
        assert error.collisions == {"/about.html": ["about.html", "about.md"]}
        assert writer.writes == 0

    def test_pagination_collides_with_page(self, write_site, make_config):
        """Test a second page at a pagination path is a collision."""
        root = write_site(
            {
                "_posts/2024-01-01-a.md": post("A"),
                "_posts/2024-01-02-b.md": post("B"),
                "page2.md": "---\npermalink: /page2/\n---\n",
            }
        )

        with pytest.raises(BuildError) as exc_info:
            SiteBuilder(make_config(paginate=1)).build(root)

        assert exc_info.value.errors[0].collisions == {"/page2/": ["page2.md", "posts page 2"]}

    def test_index_file_collides_with_directory_path(self, write_site, site_config):
        """Test a directory path and its explicit index file are one output."""
        root = write_site(
            {
                "about/index.md": post("First", "FIRST"),
                "other.md": "---\npermalink: /about/index.html\n---\nSECOND\n",
            }
        )
        writer = MemoryWriter()

        with pytest.raises(BuildError) as exc_info:
            build_site(root, site_config, writer=writer)

        error = exc_info.value.errors[0]
        assert exc_info.value.stage == "emitting"
        assert isinstance(error, PermalinkCollisionError)
        assert error.collisions == {"/about/": ["about/index.md", "other.md"]}
        assert writer.writes == 0

    def test_file_collides_with_directory(self, write_site, site_config):
        """Test a file path that is also a parent directory of another output."""
        root = write_site(
            {
                "a.md": "---\npermalink: /blog\n---\nA\n",
                "b.md": "---\npermalink: /blog/x.html\n---\nB\n",
            }
        )
        writer = MemoryWriter()

        with pytest.raises(BuildError) as exc_info:
            build_site(root, site_config, writer=writer)

        assert exc_info.value.stage == "emitting"
        assert exc_info.value.errors[0].collisions == {"/blog": ["a.md", "b.md"]}
        assert writer.writes == 0

    def test_permalink_errors_collected(self, write_site, make_config):
        """Test every permalink failure is reported together."""
        root = write_site({"_notes/a.md": post("A"), "_notes/b.md": post("B")})
        config = make_config(collections={"notes": {"output": True, "permalink": "/:year/:title/"}})

        with pytest.raises(BuildError) as exc_info:
            SiteBuilder(config).build(root)

        assert exc_info.value.stage == "emitting"
        assert [error.path for error in exc_info.value.errors] == ["_notes/a.md", "_notes/b.md"]
        assert all(isinstance(error, PermalinkError) for error in exc_info.value.errors)

    def test_render_errors(self, write_site, site_config):
        """Test renderer failures are wrapped and nothing is written."""
        root = write_site({"broken.md": post("X"), "fine.md": post("Y")})
        writer = MemoryWriter()

        with pytest.raises(BuildError) as exc_info:
            build_site(root, site_config, writer=writer, renderer=FailingRenderer())

        error = exc_info.value.errors[0]
        assert isinstance(error, RenderError)
        assert error.path == "broken.md"
        assert isinstance(error.original_error, RuntimeError)
        assert writer.writes == 0

    def test_builder_can_run_again(self, write_site, site_config):
        """Test a builder may build again after failing."""
        root = write_site({"a.md": "---\ntitle: [bad\n---\n"})
        builder = SiteBuilder(site_config)
        with pytest.raises(BuildError):
            builder.build(root)

        (root / "a.md").write_text(post("A"), encoding="utf-8")
        builder.build(root)

        assert builder.state is BuildState.DONE
        assert builder.failed_from is None


class TestBuildSite:
    """Test the build-and-write helper."""

    def test_writes_on_success(self, write_site, site_config):
        """Test the writer receives the complete tree."""
        root = write_site({"index.md": post("Home")})
        writer = MemoryWriter()

        result = build_site(root, site_config, writer=writer)

        assert writer.files == result.output
        assert writer.writes == 1
