"""Shared utilities for CLI commands."""

from pathlib import Path

import click

from depot_ingest.ingestion.pipeline import PipelineStatistics
from depot_ingest.utils.config import Config
from depot_ingest.utils.logger import configure_logging


def load_config(dist_dir: Path | None) -> Config:
    """Load configuration, configure logging and apply the --dist-dir override.

    Args:
        dist_dir: Output root from the command line, or None to keep DEPOT_DIST_DIR

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If an environment variable is invalid
    """
    config = Config()
    configure_logging(config.log_level)
    if dist_dir is not None:
        config.dist_dir = dist_dir
    return config


def display_summary(title: str, stats: PipelineStatistics) -> None:
    """Display pipeline execution summary."""
    click.echo()
    click.echo("=" * 80)
    click.echo(title)
    click.echo("=" * 80)
    click.echo(f"  Tables Parsed: {stats.tables_parsed}")
    click.echo(f"  Rows Parsed: {stats.rows_parsed}")
    click.echo(f"  Factions: {stats.factions}")
    click.echo(f"  Datasheets: {stats.datasheets}")
    click.echo(f"  Core Stratagems: {stats.core_stratagems}")
    click.echo(f"  Files Written: {stats.files_written}")

    if stats.dropped_joins:
        click.echo("  Dropped Join Rows:")
        for join, count in sorted(stats.dropped_joins.items()):
            click.echo(f"    {join}: {count}")

    click.echo(f"  Duration: {stats.duration_seconds:.1f}s")
    click.echo()
    click.echo("Summary report saved to: logs/pipeline-summary.json")
    click.echo()
