"""Tests for output writers and the rendered page repository."""

import hashlib

import pytest

pytestmark = pytest.mark.unit

from pagewright.exceptions import DatabaseError, FilesystemError
from pagewright.models.rendered_page import RenderedPage
from pagewright.storage.database import Database
from pagewright.storage.repositories import RenderedPageRepository
from pagewright.storage.writers import (
    DatabaseWriter,
    DirectoryWriter,
    MemoryWriter,
    OutputWriter,
    output_file_path,
)


class TestOutputFilePath:
    """Test mapping output paths to files."""

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/", "index.html"),
            ("/blog/", "blog/index.html"),
            ("/about.html", "about.html"),
            ("/css/site.css", "css/site.css"),
        ],
    )
    def test_output_file_path(self, path, expected):
        """Test directory paths map to index files."""
        assert output_file_path(path) == expected

    def test_escaping_path(self):
        """Test parent segments are rejected."""
        with pytest.raises(FilesystemError):
            output_file_path("/../outside.html")


class TestMemoryWriter:
    """Test the in-memory writer."""

    def test_write(self):
        """Test the tree is kept and writes are counted."""
        writer = MemoryWriter()
        writer.write({"/": b"home"})

        assert isinstance(writer, OutputWriter)
        assert writer.files == {"/": b"home"}
        assert writer.writes == 1


class TestDirectoryWriter:
    """Test writing to a local directory."""

    def test_write_tree(self, tmp_path):
        """Test files land at their index-aware locations."""
        destination = tmp_path / "_site"
        DirectoryWriter(destination).write(
            {"/": b"home", "/blog/": b"blog", "/css/site.css": b"body {}"}
        )

        assert (destination / "index.html").read_bytes() == b"home"
        assert (destination / "blog" / "index.html").read_bytes() == b"blog"
        assert (destination / "css" / "site.css").read_bytes() == b"body {}"

    def test_replaces_previous_output(self, tmp_path):
        """Test stale files from an earlier build are removed."""
        destination = tmp_path / "_site"
        writer = DirectoryWriter(destination)
        writer.write({"/old.html": b"old"})
        writer.write({"/new.html": b"new"})

        assert sorted(path.name for path in destination.iterdir()) == ["new.html"]
        assert sorted(path.name for path in tmp_path.iterdir()) == ["_site"]

    def test_failed_write_keeps_previous_output(self, tmp_path):
        """Test a failing write leaves the destination untouched."""
        destination = tmp_path / "_site"
        writer = DirectoryWriter(destination)
        writer.write({"/index.html": b"v1"})

        with pytest.raises(FilesystemError):
            writer.write({"/index.html": b"v2", "/../escape.html": b"x"})

        assert (destination / "index.html").read_bytes() == b"v1"
        assert sorted(path.name for path in tmp_path.iterdir()) == ["_site"]


class TestDatabaseSession:
    """Test the session context manager."""

    def test_commits_on_exit(self, temp_db):
        """Test rows persist without an explicit commit."""
        with temp_db.session() as session:
            RenderedPageRepository(session).create(
                RenderedPage(id="p1", site="s", path="/", content=b"", checksum="0" * 64, size=0)
            )

        with temp_db.session() as session:
            assert RenderedPageRepository(session).count("s") == 1

    def test_rolls_back_on_error(self, temp_db):
        """Test a failing block leaves no rows behind."""
        with pytest.raises(RuntimeError):
            with temp_db.session() as session:
                RenderedPageRepository(session).create(
                    RenderedPage(id="p1", site="s", path="/", content=b"", checksum="0" * 64, size=0)
                )
                raise RuntimeError("abort")

        with temp_db.session() as session:
            assert RenderedPageRepository(session).count("s") == 0


class TestDatabaseWriter:
    """Test storing output in the database."""

    def test_write_rows(self, temp_db):
        """Test every file becomes a row with checksum and size."""
        DatabaseWriter(temp_db, site="blog").write({"/": b"home", "/a.html": b"page a"})

        with temp_db.session() as session:
            repo = RenderedPageRepository(session)
            pages = repo.list_by_site("blog")

            assert [page.path for page in pages] == ["/", "/a.html"]
            assert pages[1].content == b"page a"
            assert pages[1].size == 6
            assert pages[1].checksum == hashlib.sha256(b"page a").hexdigest()

    def test_write_replaces_site_rows(self, temp_db):
        """Test a second write replaces only that site's rows."""
        DatabaseWriter(temp_db, site="blog").write({"/": b"v1", "/old.html": b"old"})
        DatabaseWriter(temp_db, site="docs").write({"/": b"docs"})
        DatabaseWriter(temp_db, site="blog").write({"/": b"v2"})

        with temp_db.session() as session:
            repo = RenderedPageRepository(session)

            assert repo.count("blog") == 1
            assert repo.count("docs") == 1
            assert repo.count() == 2
            assert repo.get_by_path("blog", "/").content == b"v2"
            assert repo.get_by_path("blog", "/old.html") is None

    def test_database_failure(self, tmp_path):
        """Test SQLAlchemy errors are wrapped."""
        database = Database(f"sqlite:///{tmp_path / 'empty.db'}")
        try:
            with pytest.raises(DatabaseError) as exc_info:
                DatabaseWriter(database, site="blog").write({"/": b"x"})
        finally:
            database.dispose()

        assert exc_info.value.original_error is not None


class TestRenderedPageRepository:
    """Test rendered page queries."""

    def test_create_and_get(self, db_session):
        """Test a single page round trip through the session."""
        repo = RenderedPageRepository(db_session)
        repo.create(
            RenderedPage(id="p1", site="s", path="/a/", content=b"a", checksum="0" * 64, size=1)
        )

        page = repo.get_by_path("s", "/a/")

        assert page.id == "p1"
        assert page.created_at is not None
        assert repo.get_by_path("other", "/a/") is None

    def test_delete_by_site(self, db_session):
        """Test deleting returns the number of removed rows."""
        repo = RenderedPageRepository(db_session)
        repo.create_many(
            [
                RenderedPage(id=f"p{i}", site="s", path=f"/{i}/", content=b"", checksum="0" * 64, size=0)
                for i in range(3)
            ]
        )

        assert repo.delete_by_site("s") == 3
        assert repo.count("s") == 0
