"""
Command-line interface for dicom-test-files.
"""

import logging
import sys
from pathlib import Path

import click

from dicomtestfiles.config import ResolverConfig
from dicomtestfiles.errors import DicomTestFilesError, IntegrityError
from dicomtestfiles.registry import write_manifest
from dicomtestfiles.resolver import FixtureResolver
from dicomtestfiles.utils import format_size


def _resolver(ctx: click.Context) -> FixtureResolver:
    try:
        return FixtureResolver(ctx.obj["config"])
    except (FileNotFoundError, ValueError, DicomTestFilesError) as e:
        click.echo(f"Error loading manifest: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option('--cache-dir', type=click.Path(file_okay=False, path_type=Path), help='Directory for downloaded files (overrides DICOM_TEST_FILES_CACHE)')
@click.option('--base-url', type=str, help='Base URL of the data folder (overrides DICOM_TEST_FILES_URL)')
@click.option('--manifest', type=click.Path(dir_okay=False, path_type=Path), help='Checksum manifest to use')
@click.option('-v', '--verbose', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, cache_dir, base_url, manifest, verbose):
    """DICOM test files: download and cache sample DICOM files"""
    if verbose:
        for name in list(logging.root.manager.loggerDict):
            if name.startswith("dicomtestfiles"):
                logging.getLogger(name).setLevel(logging.DEBUG)

    try:
        config = ResolverConfig.from_env()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config.with_overrides(
        cache_dir=cache_dir,
        base_url=base_url,
        manifest=manifest,
        progress=sys.stderr.isatty(),
    )


@cli.command('list')
@click.option('--cached', is_flag=True, help='Only show files already downloaded')
@click.pass_context
def list_files(ctx, cached):
    """List all known test files."""
    resolver = _resolver(ctx)
    identifiers = resolver.registry.list_identifiers()

    if cached:
        identifiers = [i for i in identifiers if resolver.is_cached(i)]

    click.echo(f"\nTest files: {len(identifiers)}\n")
    for identifier in identifiers:
        local = resolver.cache.lookup(identifier)
        if local is not None:
            click.echo(f"  ✓ {identifier} ({format_size(local.stat().st_size)})")
        else:
            click.echo(f"  • {identifier}")
    click.echo()


@cli.command()
@click.argument('identifiers', nargs=-1, required=True)
@click.pass_context
def get(ctx, identifiers):
    """
    Download test files if needed and print their local paths.

    IDENTIFIERS: Relative paths such as pydicom/liver.dcm
    """
    resolver = _resolver(ctx)

    for identifier in identifiers:
        try:
            click.echo(str(resolver.get(identifier)))
        except DicomTestFilesError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)


@cli.command('fetch-all')
@click.pass_context
def fetch_all(ctx):
    """
    Download every test file in the manifest.

    All files are attempted; the exit status is 1 if any failed.
    """
    resolver = _resolver(ctx)
    identifiers = resolver.registry.list_identifiers()

    click.echo(f"\nFetching {len(identifiers)} test file(s) into {resolver.config.cache_dir}\n")

    failures = []
    for identifier in identifiers:
        try:
            resolver.get(identifier)
        except DicomTestFilesError as e:
            click.echo(f"  ✗ {e}", err=True)
            failures.append(identifier)

    click.echo(f"\n{'='*70}")
    click.echo(f"Fetched: {len(identifiers) - len(failures)}  Failed: {len(failures)}")
    click.echo(f"{'='*70}\n")

    if failures:
        sys.exit(1)


@cli.command()
@click.pass_context
def verify(ctx):
    """Re-check every downloaded file against the manifest."""
    resolver = _resolver(ctx)

    checked = 0
    corrupt = []
    for identifier in resolver.registry.list_identifiers():
        try:
            if resolver.verify(identifier):
                checked += 1
        except IntegrityError as e:
            click.echo(f"  ✗ {e}", err=True)
            corrupt.append(identifier)

    click.echo(f"Verified {checked} cached file(s), {len(corrupt)} corrupt")

    if corrupt:
        click.echo("Delete the corrupt files and run 'fetch-all' again.", err=True)
        sys.exit(1)


@cli.command()
@click.argument('source_dir', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('-o', '--output', type=click.Path(dir_okay=False, path_type=Path), default=Path('checksums.yaml'), show_default=True, help='Output manifest')
def manifest(source_dir, output):
    """
    Generate a checksum manifest from a data folder.

    Point DICOM_TEST_FILES_MANIFEST at the result to use it.

    SOURCE_DIR: Checkout of the dicom-test-files data folder
    """
    saved = write_manifest(source_dir, output)
    click.echo(f"✓ Saved manifest to: {saved}")


@cli.command()
@click.pass_context
def config(ctx):
    """Show the effective configuration."""
    cfg = ctx.obj["config"]

    click.echo(f"\nConfiguration:")
    click.echo(f"  Cache directory: {cfg.cache_dir}")
    click.echo(f"  Base URL:        {cfg.base_url}")
    click.echo(f"  Manifest:        {cfg.manifest}")
    click.echo(f"  Timeout:         {cfg.timeout}s")
    click.echo(f"  Retries:         {cfg.retries}")
    click.echo()


if __name__ == '__main__':
    cli()
