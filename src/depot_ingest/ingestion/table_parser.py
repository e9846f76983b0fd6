"""Parser for the pipe-delimited tables of the Wahapedia export."""

import re
from collections.abc import Callable

import structlog

from depot_ingest.common.constants import BYTE_ORDER_MARK, FIELD_DELIMITER, ROW_DELIMITER
from depot_ingest.ingestion.markup_sanitizer import sanitize_markup
from depot_ingest.ingestion.models import RawRecord, RawTable
from depot_ingest.utils.exceptions import TableParseError

logger = structlog.get_logger(__name__)

_SEPARATOR_RUN = re.compile(r"[^a-zA-Z0-9]+(.)")
_CAMEL_CASE = re.compile(r"[a-z][a-zA-Z0-9]*")


def to_camel_case(header: str) -> str:
    """Convert a raw header token to camelCase.

    "Datasheets_unit_composition" becomes "datasheetsUnitComposition". Tokens that are
    already camelCase come back unchanged.

    Args:
        header: Raw header token

    Returns:
        camelCase header
    """
    if _CAMEL_CASE.fullmatch(header):
        return header
    return _SEPARATOR_RUN.sub(lambda match: match.group(1).upper(), header.lower())


class TableParser:
    """Split raw table text into ordered records of sanitized strings.

    The export format is one header row, data rows each ending with a trailing
    delimiter, and a final terminator row which never holds data.
    """

    def __init__(self, sanitize: Callable[[str], str] = sanitize_markup) -> None:
        """Initialize the parser.

        Args:
            sanitize: Function applied to every cell value
        """
        self.sanitize = sanitize
        self.logger = logger.bind(component="table_parser")

    def parse(self, text: str, table: str = "<unnamed>") -> RawTable:
        """Parse one raw table.

        Args:
            text: Full raw text of the table
            table: Table name, used in logs and errors

        Returns:
            Records in source order

        Raises:
            TableParseError: If the header is missing or a row has the wrong column count
        """
        rows = text.removeprefix(BYTE_ORDER_MARK).split(ROW_DELIMITER)
        headers = self._parse_headers(rows[0], table)

        records: RawTable = []
        # Row 0 is the header, the last row is the terminator
        for line_number, row in enumerate(rows[1:-1], start=2):
            records.append(self._parse_row(row, headers, table, line_number))

        self.logger.info("table_parsed", table=table, rows=len(records), columns=len(headers))
        return records

    def _parse_headers(self, header_row: str, table: str) -> list[str]:
        if not header_row.strip():
            raise TableParseError(f"Table {table} has no header row", table=table, line=1)

        tokens = header_row.split(FIELD_DELIMITER)
        if tokens[-1] == "":
            tokens.pop()

        headers = [to_camel_case(token) for token in tokens]
        duplicates = sorted({h for h in headers if headers.count(h) > 1})
        if duplicates:
            raise TableParseError(
                f"Table {table} has duplicate columns after normalization: {duplicates}",
                table=table,
                line=1,
            )
        return headers

    def _parse_row(self, row: str, headers: list[str], table: str, line_number: int) -> RawRecord:
        # The last column is the trailing delimiter artifact
        columns = row.split(FIELD_DELIMITER)[:-1]
        if len(columns) != len(headers):
            raise TableParseError(
                f"Table {table} line {line_number}: expected {len(headers)} columns, "
                f"got {len(columns)}",
                table=table,
                line=line_number,
            )
        record: RawRecord = {}
        for header, value in zip(headers, columns, strict=True):
            try:
                record[header] = self.sanitize(value)
            except ValueError as e:
                raise TableParseError(
                    f"Table {table} line {line_number}: column {header!r} could not be sanitized: {e}",
                    table=table,
                    line=line_number,
                ) from e
        return record
