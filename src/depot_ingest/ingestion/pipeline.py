"""End-to-end orchestration: raw tables -> checkpoint -> faction documents."""

import json
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
from tqdm import tqdm

from depot_ingest.common.constants import SOURCE_TABLES
from depot_ingest.ingestion.assembler import AssemblyResult, RelationalAssembler, SourceData
from depot_ingest.ingestion.document_emitter import DocumentEmitter
from depot_ingest.ingestion.json_archive import load_all_tables, save_checkpoint
from depot_ingest.ingestion.models import RawTable
from depot_ingest.ingestion.slug_allocator import SlugAllocator
from depot_ingest.ingestion.source_fetcher import SourceFetcher
from depot_ingest.ingestion.table_parser import TableParser
from depot_ingest.utils.config import Config
from depot_ingest.utils.exceptions import IngestionError
from depot_ingest.utils.logger import bind_run_context


@dataclass
class PipelineStatistics:
    """Statistics for one pipeline run.

    Attributes:
        tables_downloaded: Raw tables fetched over HTTP
        tables_reused: Raw tables read from the cache
        tables_parsed: Tables parsed into the checkpoint
        rows_parsed: Records across all parsed tables
        factions: Faction documents emitted
        datasheets: Visible datasheets across all factions
        core_stratagems: Stratagems without a faction
        dropped_joins: Rows dropped per soft join
        files_written: Documents written by the emitter
        start_time: Start time as unix timestamp
        end_time: End time as unix timestamp
        duration_seconds: Total processing duration
    """

    tables_downloaded: int = 0
    tables_reused: int = 0
    tables_parsed: int = 0
    rows_parsed: int = 0
    factions: int = 0
    datasheets: int = 0
    core_stratagems: int = 0
    dropped_joins: dict[str, int] = field(default_factory=dict)
    files_written: int = 0
    start_time: float = 0.0
    end_time: float = 0.0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert statistics to dictionary for JSON serialization."""
        return {
            "tables_downloaded": self.tables_downloaded,
            "tables_reused": self.tables_reused,
            "tables_parsed": self.tables_parsed,
            "rows_parsed": self.rows_parsed,
            "factions": self.factions,
            "datasheets": self.datasheets,
            "core_stratagems": self.core_stratagems,
            "dropped_joins": dict(self.dropped_joins),
            "files_written": self.files_written,
            "duration_seconds": round(self.duration_seconds, 2),
            "start_time": time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.start_time)),
            "end_time": time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.end_time)),
        }


class DataPipeline:
    """Orchestrates the full rebuild of the faction documents.

    1. Fetch the nineteen raw tables (or reuse the cache)
    2. Parse each table into sanitized records
    3. Write the per-table JSON checkpoint
    4. Allocate slugs and join the tables into faction documents
    5. Emit faction documents, the index and side documents

    Assembly can be rerun from the checkpoint alone. A run either completes or raises;
    nothing is emitted when assembly fails.
    """

    def __init__(
        self,
        config: Config | None = None,
        fetcher: SourceFetcher | None = None,
        parser: TableParser | None = None,
        logs_path: Path | None = None,
    ) -> None:
        """Initialize pipeline components.

        Args:
            config: Application configuration (loaded from the environment by default)
            fetcher: Source fetcher; built from config when omitted
            parser: Table parser
            logs_path: Directory for the summary report (default: logs/)
        """
        self.config = config or Config()
        self.fetcher = fetcher or SourceFetcher(
            cache_dir=self.config.source_data_dir,
            base_url=self.config.source_url,
            timeout=self.config.http_timeout,
        )
        self.parser = parser or TableParser()
        self.emitter = DocumentEmitter(self.config.data_dir)
        self.logs_path = logs_path or Path("logs")
        self.logger = structlog.get_logger(__name__)
        self.stats = PipelineStatistics()

    def run(self, force_download: bool = False) -> PipelineStatistics:
        """Run fetch, parse, checkpoint, assembly and emission.

        Args:
            force_download: Discard cached raw tables before fetching

        Returns:
            PipelineStatistics for the run

        Raises:
            IntegrityError: If the join graph is broken
            IngestionError: If any other stage fails
        """

        def build() -> None:
            raw_tables = self.fetcher.fetch_all(force_download=force_download)
            self.stats.tables_downloaded = self.fetcher.downloaded
            self.stats.tables_reused = self.fetcher.reused
            self._assemble_and_emit(self.parse_tables(raw_tables))

        return self._execute("full", build, force_download=force_download)

    def parse_cached(self) -> PipelineStatistics:
        """Parse already-downloaded raw tables into the checkpoint only."""
        return self._execute("parse", lambda: self.parse_tables(self.fetcher.load_cached()))

    def assemble_from_checkpoint(self) -> PipelineStatistics:
        """Rerun assembly and emission from the JSON checkpoint, without parsing."""
        return self._execute(
            "assemble", lambda: self._assemble_and_emit(load_all_tables(self.config.json_dir))
        )

    def parse_tables(self, raw_tables: dict[str, str]) -> dict[str, RawTable]:
        """Parse every raw table, in table order, then checkpoint them together.

        The checkpoint is only replaced once all tables have parsed; a parse error leaves
        the previous checkpoint untouched.

        Args:
            raw_tables: Mapping of table key to raw text

        Returns:
            Mapping of table key to parsed records
        """
        tables: dict[str, RawTable] = {}
        for key in tqdm(SOURCE_TABLES, desc="Parsing tables", unit="table"):
            if key not in raw_tables:
                raise IngestionError(f"Raw table missing: {SOURCE_TABLES[key]}")
            records = self.parser.parse(raw_tables[key], table=SOURCE_TABLES[key])
            tables[key] = records

            self.stats.tables_parsed += 1
            self.stats.rows_parsed += len(records)

        save_checkpoint(tables, self.config.json_dir)
        return tables

    def _assemble_and_emit(self, tables: dict[str, RawTable]) -> None:
        assembler = RelationalAssembler(SourceData.from_tables(tables), SlugAllocator())
        result: AssemblyResult = assembler.assemble()

        written = self.emitter.emit(result)

        self.stats.factions = len(result.factions)
        self.stats.datasheets = result.datasheet_count
        self.stats.core_stratagems = len(result.core_stratagems)
        self.stats.dropped_joins = result.dropped_joins
        self.stats.files_written = len(written)

    def _execute(self, mode: str, stages: Callable[[], Any], **context: Any) -> PipelineStatistics:
        """Run stages with fresh statistics, logging and the summary report.

        Raises:
            IngestionError: Raised as is by a stage, or wrapping any other exception
        """
        bind_run_context(run_id=uuid.uuid4().hex[:12], mode=mode)
        self.stats = PipelineStatistics(start_time=time.time())
        self.logger.info("pipeline_run_started", dist_dir=str(self.config.dist_dir), **context)

        try:
            stages()
        except IngestionError as e:
            self._log_failure(e)
            raise
        except Exception as e:
            self._log_failure(e)
            raise IngestionError(f"Pipeline execution failed: {e}") from e

        self.stats.end_time = time.time()
        self.stats.duration_seconds = self.stats.end_time - self.stats.start_time
        self._save_summary_report()

        self.logger.info("pipeline_run_completed", **self.stats.to_dict())
        return self.stats

    def _log_failure(self, error: Exception) -> None:
        self.logger.error(
            "pipeline_run_failed",
            error=str(error),
            error_type=type(error).__name__,
            exc_info=True,
        )

    def _save_summary_report(self) -> None:
        """Save run summary report to JSON file."""
        summary_path = self.logs_path / "pipeline-summary.json"

        try:
            self.logs_path.mkdir(parents=True, exist_ok=True)
            with summary_path.open("w") as f:
                json.dump(self.stats.to_dict(), f, indent=2)

            self.logger.info("summary_report_saved", path=str(summary_path))
        except OSError as e:
            self.logger.error("summary_report_save_failed", error=str(e))
