"""CLI command for rebuilding the documents from the JSON checkpoint."""

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
def assemble(dist_dir: Path | None) -> None:
    """Assemble and emit the faction documents from an existing checkpoint.

    Reads <dist>/json without touching the raw tables, so join changes can be
    tried without re-parsing.
    """
    try:
        config = load_config(dist_dir)
        pipeline = DataPipeline(config=config)
    except Exception as e:
        click.echo(f"  Failed to initialize pipeline: {e}", err=True)
        raise click.Abort() from e

    try:
        stats = pipeline.assemble_from_checkpoint()
    except Exception as e:
        click.echo(f"  Assembly failed: {e}", err=True)
        logger.error("assemble_failed", error=str(e))
        raise click.Abort() from e

    click.echo(f"Documents written to: {config.data_dir}")
    display_summary("Assembly Complete!", stats)


if __name__ == "__main__":
    assemble()
