"""pagewright CLI - build static sites from a source tree."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from pagewright.config import DEFAULT_CONFIG_FILE, SiteConfig, get_settings, load_site_config
from pagewright.exceptions import BuildError, ConfigurationError, PagewrightError
from pagewright.logging_config import configure_logging
from pagewright.services.build_service import BuildResult, SiteBuilder, build_site
from pagewright.storage.database import Database
from pagewright.storage.writers import DatabaseWriter, DirectoryWriter, OutputWriter


def _load_config(source: Path, config: Optional[str]) -> SiteConfig:
    if config is None:
        return load_site_config(source / DEFAULT_CONFIG_FILE, missing_ok=True)
    return load_site_config(config)


def _report_failure(error: PagewrightError) -> None:
    if isinstance(error, BuildError):
        click.echo(f"✗ Build failed during {error.stage}:", err=True)
        for item in error.errors:
            click.echo(f"  {item}", err=True)
    else:
        click.echo(f"✗ {error}", err=True)


def _report_warnings(result: BuildResult) -> None:
    for warning in result.warnings:
        click.echo(f"! {warning}", err=True)


@click.group()
@click.version_option(package_name="pagewright")
def cli():
    """pagewright - static site content pipeline."""
    configure_logging(get_settings())


@cli.command()
@click.option("--source", "-s", default=".", type=click.Path(file_okay=False), help="Site source directory")
@click.option("--config", "-c", default=None, help="Configuration file (default: <source>/_config.yml)")
@click.option("--destination", "-d", default=None, help="Output directory (default: config destination)")
@click.option("--database-url", default=None, help="Store output in this database instead of a directory")
@click.option("--site", default="default", show_default=True, help="Site name for database output")
@click.option("--workers", "-w", type=click.IntRange(min=1), default=None, help="Parse worker count")
def build(
    source: str,
    config: Optional[str],
    destination: Optional[str],
    database_url: Optional[str],
    site: str,
    workers: Optional[int],
):
    """Build the site and write its output.

    Args:
        source: Site source directory
        config: Configuration file path
        destination: Output directory
        database_url: Output database URL
        site: Site name for database output
        workers: Parse worker count
    """
    root = Path(source)
    database = None
    try:
        site_config = _load_config(root, config)
        writer: OutputWriter
        if database_url:
            database = Database(database_url)
            database.create_tables()
            writer = DatabaseWriter(database, site=site)
            target = f"{database_url} (site '{site}')"
        else:
            output_dir = Path(destination) if destination else root / site_config.destination
            writer = DirectoryWriter(output_dir)
            target = str(output_dir)

        result = build_site(root, site_config, writer=writer, max_workers=workers)
    except PagewrightError as e:
        _report_failure(e)
        raise SystemExit(1)
    finally:
        if database is not None:
            database.dispose()

    _report_warnings(result)
    click.echo(f"✓ Wrote {len(result.output)} file(s) to {target}")


@cli.command()
@click.option("--source", "-s", default=".", type=click.Path(file_okay=False), help="Site source directory")
@click.option("--config", "-c", default=None, help="Configuration file (default: <source>/_config.yml)")
def check(source: str, config: Optional[str]):
    """Build the site in memory and list its output without writing.

    Args:
        source: Site source directory
        config: Configuration file path
    """
    root = Path(source)
    try:
        site_config = _load_config(root, config)
        result = SiteBuilder(site_config).build(root)
    except (ConfigurationError, BuildError) as e:
        _report_failure(e)
        raise SystemExit(1)

    for path, origin in result.sources.items():
        click.echo(f"{path}  <-  {origin}")
    _report_warnings(result)
    click.echo(f"✓ {len(result.output)} output file(s)")


def main():
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
