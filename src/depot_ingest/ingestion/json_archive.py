"""JSON checkpoint of parsed tables, written between parsing and assembly."""

import json
from collections.abc import Mapping
from pathlib import Path

import structlog

from depot_ingest.common.constants import SOURCE_TABLES
from depot_ingest.ingestion.models import RawTable
from depot_ingest.utils.exceptions import IngestionError
from depot_ingest.utils.files import staged_directory

logger = structlog.get_logger(__name__)


def raw_filename(table_filename: str) -> str:
    """Cache name of a raw table: "Datasheets_models_cost.csv" -> "datasheets-models-cost.csv"."""
    return table_filename.lower().replace("_", "-")


def checkpoint_filename(table_filename: str) -> str:
    """Checkpoint name of a table: "Datasheets_models_cost.csv" -> "datasheets-models-cost.json"."""
    return raw_filename(table_filename).replace(".csv", ".json")


def save_table(records: RawTable, table_key: str, json_dir: Path) -> Path:
    """Write one parsed table as a flat JSON array.

    Args:
        records: Parsed records
        table_key: Key of the table in SOURCE_TABLES
        json_dir: Checkpoint directory (created if needed)

    Returns:
        Path of the written file

    Raises:
        OSError: If file write fails
    """
    json_dir.mkdir(parents=True, exist_ok=True)
    file_path = json_dir / checkpoint_filename(SOURCE_TABLES[table_key])

    try:
        file_path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        raise OSError(f"Failed to write checkpoint {file_path}: {e}") from e

    return file_path


def save_checkpoint(tables: Mapping[str, RawTable], json_dir: Path) -> list[Path]:
    """Replace the whole checkpoint with a complete set of parsed tables.

    The tables are written to a staging directory that replaces `json_dir` only after
    every file is written, so the checkpoint never mixes tables from different runs.

    Args:
        tables: Parsed records for every key of SOURCE_TABLES
        json_dir: Checkpoint directory

    Returns:
        Paths of the checkpoint files

    Raises:
        IngestionError: If a table is missing
    """
    missing = [key for key in SOURCE_TABLES if key not in tables]
    if missing:
        raise IngestionError(f"Cannot checkpoint incomplete tables, missing: {', '.join(missing)}")

    with staged_directory(json_dir) as staging:
        for key in SOURCE_TABLES:
            save_table(tables[key], key, staging)

    logger.info("checkpoint_saved", json_dir=str(json_dir), tables=len(SOURCE_TABLES))
    return [json_dir / checkpoint_filename(SOURCE_TABLES[key]) for key in SOURCE_TABLES]


def load_table(table_key: str, json_dir: Path) -> RawTable:
    """Read one parsed table back from the checkpoint.

    Raises:
        IngestionError: If the checkpoint file is missing or not a JSON array
    """
    file_path = json_dir / checkpoint_filename(SOURCE_TABLES[table_key])
    if not file_path.exists():
        raise IngestionError(f"Checkpoint not found: {file_path}")

    try:
        records = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise IngestionError(f"Checkpoint {file_path} is not valid JSON: {e}") from e

    if not isinstance(records, list):
        raise IngestionError(f"Checkpoint {file_path} does not hold a JSON array")
    return records


def load_all_tables(json_dir: Path) -> dict[str, RawTable]:
    """Read every table of the checkpoint, keyed like SOURCE_TABLES."""
    tables = {key: load_table(key, json_dir) for key in SOURCE_TABLES}
    logger.info(
        "checkpoint_loaded",
        json_dir=str(json_dir),
        tables=len(tables),
        rows=sum(len(records) for records in tables.values()),
    )
    return tables
