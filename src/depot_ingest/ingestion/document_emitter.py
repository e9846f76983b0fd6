"""Writes the assembled documents to the output directory."""

import json
from pathlib import Path
from typing import Any

import structlog

from depot_ingest.common.constants import (
    CORE_STRATAGEMS_FILENAME,
    FACTIONS_DIRNAME,
    INDEX_FILENAME,
    LAST_UPDATE_FILENAME,
)
from depot_ingest.ingestion.assembler import AssemblyResult
from depot_ingest.utils.files import staged_directory

logger = structlog.get_logger(__name__)


class DocumentEmitter:
    """Write one JSON document per faction plus the index.

    The output directory is rebuilt from scratch on every run:

        data/
          index.json
          core-stratagems.json
          last-update.json
          factions/<faction id>.json

    Documents are written to a staging directory first; the previous output stays in
    place until every document has been written.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.logger = logger.bind(component="document_emitter")

    def emit(self, result: AssemblyResult) -> list[Path]:
        """Write every document of an assembly result.

        Args:
            result: Assembled factions, index and side documents

        Returns:
            Paths of the written files

        Raises:
            OSError: If a file cannot be written
        """
        with staged_directory(self.data_dir) as staging:
            relative_paths = self._write_documents(result, staging)
        written = [self.data_dir / path for path in relative_paths]

        self.logger.info(
            "documents_emitted",
            data_dir=str(self.data_dir),
            factions=len(result.factions),
            files=len(written),
        )
        return written

    def _write_documents(self, result: AssemblyResult, output_dir: Path) -> list[Path]:
        """Write all documents under output_dir and return their relative paths."""
        (output_dir / FACTIONS_DIRNAME).mkdir()
        documents: list[tuple[Path, Any]] = [
            (Path(FACTIONS_DIRNAME) / f"{faction.id}.json", faction.to_json_dict())
            for faction in result.factions
        ]
        documents.append((Path(INDEX_FILENAME), [entry.to_json_dict() for entry in result.index]))
        documents.append((Path(CORE_STRATAGEMS_FILENAME), result.core_stratagems))
        if result.last_update is not None:
            documents.append((Path(LAST_UPDATE_FILENAME), result.last_update))

        for relative_path, payload in documents:
            self._write_json(output_dir / relative_path, payload)
        return [relative_path for relative_path, _ in documents]

    @staticmethod
    def _write_json(path: Path, payload: Any) -> None:
        path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
