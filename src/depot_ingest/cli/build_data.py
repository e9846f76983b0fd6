"""CLI command for the full data build: fetch, parse, assemble, emit."""

from pathlib import Path

import click
import structlog

from depot_ingest.cli.utils import display_summary, load_config
from depot_ingest.ingestion.pipeline import DataPipeline

logger = structlog.get_logger(__name__)


@click.command()
@click.option(
    "--force-download",
    is_flag=True,
    help="Discard cached raw tables and download them again",
)
@click.option(
    "--dist-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output root (default: DEPOT_DIST_DIR or dist/)",
)
def build_data(force_download: bool, dist_dir: Path | None) -> None:
    """Build the faction documents from the Wahapedia export.

    Downloads the raw tables into <dist>/source_data (cached files are reused
    unless --force-download is given), parses them into the <dist>/json
    checkpoint and writes the faction documents and index to <dist>/data.

    Examples:

        \b
        # Rebuild, reusing cached raw tables
        depot-build

        \b
        # Rebuild from a fresh download
        depot-build --force-download
    """
    click.echo("=" * 80)
    click.echo("Depot Ingest - Data Build")
    click.echo("=" * 80)
    click.echo()

    try:
        config = load_config(dist_dir)
        pipeline = DataPipeline(config=config)
    except Exception as e:
        click.echo(f"  Failed to initialize pipeline: {e}", err=True)
        raise click.Abort() from e

    click.echo(f"Source URL: {config.source_url}")
    click.echo(f"Output Root: {config.dist_dir}")
    click.echo(f"Force Download: {force_download}")
    click.echo()

    try:
        stats = pipeline.run(force_download=force_download)
    except KeyboardInterrupt:
        click.echo()
        click.echo("  Build interrupted by user", err=True)
        raise click.Abort() from None
    except Exception as e:
        click.echo()
        click.echo(f"  Build failed: {e}", err=True)
        logger.error("build_failed", error=str(e))
        raise click.Abort() from e

    display_summary("Build Complete!", stats)


if __name__ == "__main__":
    build_data()
