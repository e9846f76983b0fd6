"""CLI command for parsing cached raw tables into the JSON checkpoint."""

from pathlib import Path

import click
import structlog

from depot_ingest.cli.utils import display_summary, load_config
from depot_ingest.ingestion.pipeline import DataPipeline

logger = structlog.get_logger(__name__)


@click.command()
@click.option(
    "--dist-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output root (default: DEPOT_DIST_DIR or dist/)",
)
def parse_tables(dist_dir: Path | None) -> None:
    """Parse the cached raw tables into the per-table JSON checkpoint.

    Nothing is downloaded; every table must already be in <dist>/source_data.
    """
    try:
        config = load_config(dist_dir)
        pipeline = DataPipeline(config=config)
    except Exception as e:
        click.echo(f"  Failed to initialize pipeline: {e}", err=True)
        raise click.Abort() from e

    try:
        stats = pipeline.parse_cached()
    except Exception as e:
        click.echo(f"  Parsing failed: {e}", err=True)
        logger.error("parse_failed", error=str(e))
        raise click.Abort() from e

    click.echo(f"Checkpoint written to: {config.json_dir}")
    display_summary("Parsing Complete!", stats)


if __name__ == "__main__":
    parse_tables()
