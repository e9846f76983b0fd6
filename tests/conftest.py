"""Pytest configuration and shared fixtures."""

import copy
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
import structlog

from depot_ingest.common.constants import (
    BYTE_ORDER_MARK,
    FIELD_DELIMITER,
    ROW_DELIMITER,
    SOURCE_TABLES,
)
from depot_ingest.ingestion.models import RawTable
from depot_ingest.ingestion.table_parser import to_camel_case
from depot_ingest.utils.logger import configure_logging

# Header rows as they appear in the export (snake_case, normalized by the parser)
RAW_HEADERS: dict[str, list[str]] = {
    "factions": ["id", "name", "link"],
    "sources": ["id", "name", "type", "edition", "version", "errata_date", "errata_link"],
    "datasheets": [
        "id",
        "name",
        "faction_id",
        "source_id",
        "legend",
        "role",
        "loadout",
        "transport",
        "virtual",
        "leader_head",
        "leader_footer",
        "damaged_w",
        "damaged_description",
        "link",
    ],
    "datasheet_abilities": [
        "datasheet_id",
        "line",
        "ability_id",
        "model",
        "name",
        "description",
        "type",
        "parameter",
    ],
    "datasheet_keywords": ["datasheet_id", "keyword", "model", "is_faction_keyword"],
    "datasheet_models": ["datasheet_id", "line", "name", "M", "T", "Sv", "W", "Ld", "OC"],
    "datasheet_options": ["datasheet_id", "line", "button", "description"],
    "datasheet_wargear": ["datasheet_id", "line", "name", "range", "type", "A", "BS_WS", "S", "AP", "D"],
    "datasheet_unit_composition": ["datasheet_id", "line", "description"],
    "datasheet_model_costs": ["datasheet_id", "line", "description", "cost"],
    "datasheet_stratagems": ["datasheet_id", "stratagem_id"],
    "datasheet_enhancements": ["datasheet_id", "enhancement_id"],
    "datasheet_detachment_abilities": ["datasheet_id", "detachment_ability_id"],
    "datasheet_leaders": ["leader_id", "attached_id"],
    "stratagems": ["id", "faction_id", "name", "type", "cp_cost", "description", "detachment"],
    "abilities": ["id", "name", "legend", "faction_id", "description"],
    "enhancements": ["id", "faction_id", "name", "cost", "detachment", "description"],
    "detachment_abilities": ["id", "faction_id", "name", "description", "detachment"],
    "last_update": ["last_update"],
}

# A small but complete export: two factions, Forge World and Legends sources,
# a virtual datasheet, a slug collision and one broken reference per soft join.
SOURCE_ROWS: dict[str, list[dict[str, str]]] = {
    "factions": [
        {"id": "SM", "name": "Space Marines", "link": "https://wahapedia.ru/wh40k10ed/factions/space-marines"},
        {"id": "TAU", "name": "T'au Empire", "link": "https://wahapedia.ru/wh40k10ed/factions/tau-empire"},
    ],
    "sources": [
        {"id": "S1", "name": "Codex: Space Marines", "type": "Codex"},
        {"id": "S2", "name": "Imperial Armour: Astartes", "type": "Index"},
        {"id": "S3", "name": "Legends: Space Marines", "type": "Legends"},
    ],
    "datasheets": [
        {"id": "CAP", "name": "Captain", "faction_id": "SM", "source_id": "S1", "role": "Characters", "virtual": "false"},
        {"id": "INT", "name": "Intercessor Squad", "faction_id": "SM", "source_id": "S1", "role": "Battleline", "virtual": "false"},
        {"id": "SPR", "name": "Spartan Assault Tank", "faction_id": "SM", "source_id": "S2", "role": "Dedicated Transport", "virtual": "false"},
        {"id": "OLD", "name": "Captain", "faction_id": "SM", "source_id": "S3", "role": "Characters", "virtual": "false"},
        {"id": "BGD", "name": "Bodyguard Squad", "faction_id": "SM", "source_id": "S1", "role": "Other", "virtual": "true"},
        {"id": "STL", "name": "Stealth Battlesuits", "faction_id": "TAU", "source_id": "", "role": "Infantry", "virtual": "false"},
    ],
    "datasheet_abilities": [
        {"datasheet_id": "CAP", "line": "1", "ability_id": "A1", "type": "Core"},
        {"datasheet_id": "CAP", "line": "2", "name": "Rites of Battle", "description": "<p>Reroll.</p>", "type": "Datasheet"},
        {"datasheet_id": "INT", "line": "1", "ability_id": "A404", "type": "Core"},
    ],
    "datasheet_keywords": [
        {"datasheet_id": "CAP", "keyword": "Infantry", "is_faction_keyword": "false"},
        {"datasheet_id": "CAP", "keyword": "Adeptus Astartes", "is_faction_keyword": "true"},
    ],
    "datasheet_models": [
        {"datasheet_id": "CAP", "line": "1", "name": "Captain", "M": "6\"", "T": "4", "Sv": "3+", "W": "5", "Ld": "6+", "OC": "1"},
    ],
    "datasheet_options": [
        {"datasheet_id": "INT", "line": "1", "button": "■", "description": "The Sergeant can be equipped with 1 power fist."},
    ],
    "datasheet_wargear": [
        {"datasheet_id": "CAP", "line": "1", "name": "Master-crafted bolt rifle", "range": "24\"", "type": "Ranged", "A": "2", "BS_WS": "2+", "S": "4", "AP": "-1", "D": "2"},
    ],
    "datasheet_unit_composition": [
        {"datasheet_id": "INT", "line": "1", "description": "1 Intercessor Sergeant"},
        {"datasheet_id": "INT", "line": "2", "description": "4-9 Intercessors"},
    ],
    "datasheet_model_costs": [
        {"datasheet_id": "CAP", "line": "1", "description": "1 model", "cost": "80"},
    ],
    "datasheet_stratagems": [
        {"datasheet_id": "CAP", "stratagem_id": "ST1"},
        {"datasheet_id": "CAP", "stratagem_id": "ST999"},
    ],
    "datasheet_enhancements": [
        {"datasheet_id": "CAP", "enhancement_id": "EN1"},
        {"datasheet_id": "CAP", "enhancement_id": "EN404"},
    ],
    "datasheet_detachment_abilities": [
        {"datasheet_id": "CAP", "detachment_ability_id": "DA1"},
        {"datasheet_id": "INT", "detachment_ability_id": "DA404"},
    ],
    "datasheet_leaders": [
        {"leader_id": "CAP", "attached_id": "INT"},
        {"leader_id": "CAP", "attached_id": "BGD"},
        {"leader_id": "CAP", "attached_id": "NOPE"},
    ],
    "stratagems": [
        {"id": "ST0", "faction_id": "", "name": "Command Re-roll", "type": "Core", "cp_cost": "1", "description": "Re-roll one roll."},
        {"id": "ST1", "faction_id": "SM", "name": "Armour of Contempt", "type": "Battle Tactic", "cp_cost": "1", "description": "Worsen AP.", "detachment": "Gladius Task Force"},
        {"id": "ST2", "faction_id": "TAU", "name": "Photon Grenades", "type": "Wargear", "cp_cost": "1", "description": "Blind.", "detachment": "Kauyon"},
    ],
    "abilities": [
        {"id": "A1", "name": "Oath of Moment", "legend": "", "faction_id": "SM", "description": "Re-roll hits."},
    ],
    "enhancements": [
        {"id": "EN1", "faction_id": "SM", "name": "Artificer Armour", "cost": "10", "detachment": "Gladius Task Force", "description": "2+ save."},
        {"id": "EN2", "faction_id": "SM", "name": "The Honour Vehement", "cost": "15", "detachment": "Gladius Task Force", "description": "+1 A."},
    ],
    "detachment_abilities": [
        {"id": "DA1", "faction_id": "SM", "name": "Combat Doctrines", "description": "Pick a doctrine.", "detachment": "Gladius Task Force"},
        {"id": "DA2", "faction_id": "SM", "name": "Oaths of the Founding", "description": "Extra oaths.", "detachment": "Anvil Siege Force"},
    ],
    "last_update": [
        {"last_update": "2024-06-01 12:00:00"},
    ],
}


def _cells(headers: list[str], row: dict[str, str]) -> list[str]:
    return [row.get(header, "") for header in headers]


def render_table(headers: list[str], rows: list[dict[str, str]]) -> str:
    """Render rows in the export format: BOM, trailing delimiters, CRLF, terminator row."""
    lines = [FIELD_DELIMITER.join(headers) + FIELD_DELIMITER]
    lines.extend(FIELD_DELIMITER.join(_cells(headers, row)) + FIELD_DELIMITER for row in rows)
    return BYTE_ORDER_MARK + ROW_DELIMITER.join(lines) + ROW_DELIMITER


def to_records(headers: list[str], rows: list[dict[str, str]]) -> RawTable:
    """Records as the parser would produce them for plain-text cells."""
    return [
        {to_camel_case(header): value.strip() for header, value in zip(headers, _cells(headers, row), strict=True)}
        for row in rows
    ]


@pytest.fixture
def source_rows() -> dict[str, list[dict[str, str]]]:
    """Mutable copy of the sample export, keyed by table key."""
    return copy.deepcopy(SOURCE_ROWS)


@pytest.fixture
def build_records() -> Callable[[dict[str, list[dict[str, str]]]], dict[str, RawTable]]:
    """Return a function turning sample rows into parsed records per table."""

    def _build(rows: dict[str, list[dict[str, str]]]) -> dict[str, RawTable]:
        return {key: to_records(RAW_HEADERS[key], rows[key]) for key in RAW_HEADERS}

    return _build


@pytest.fixture
def build_raw_tables() -> Callable[[dict[str, list[dict[str, str]]]], dict[str, str]]:
    """Return a function turning sample rows into raw table text per table."""

    def _build(rows: dict[str, list[dict[str, str]]]) -> dict[str, str]:
        return {key: render_table(RAW_HEADERS[key], rows[key]) for key in RAW_HEADERS}

    return _build


@pytest.fixture
def source_tables(source_rows, build_records) -> dict[str, RawTable]:
    """Parsed records of the sample export."""
    return build_records(source_rows)


@pytest.fixture
def dist_dir(tmp_path: Path, monkeypatch) -> Path:
    """Isolated output root; the working directory moves to tmp_path for logs/."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DEPOT_DIST_DIR", str(tmp_path / "dist"))
    monkeypatch.delenv("DEPOT_SOURCE_URL", raising=False)
    monkeypatch.delenv("DEPOT_HTTP_TIMEOUT", raising=False)
    return tmp_path / "dist"


@pytest.fixture
def make_transport(build_raw_tables) -> Callable[[dict[str, list[dict[str, str]]]], httpx.MockTransport]:
    """Return a function serving sample rows as the remote export."""

    def _make(rows: dict[str, list[dict[str, str]]]) -> httpx.MockTransport:
        raw_tables = build_raw_tables(rows)
        by_filename = {SOURCE_TABLES[key]: text for key, text in raw_tables.items()}

        def handler(request: httpx.Request) -> httpx.Response:
            filename = request.url.path.rsplit("/", 1)[-1]
            if filename not in by_filename:
                return httpx.Response(404)
            return httpx.Response(200, content=by_filename[filename].encode("utf-8"))

        return httpx.MockTransport(handler)

    return _make


@pytest.fixture(autouse=True)
def reset_logging():
    """Point log handlers at the stderr of the current test."""
    configure_logging("INFO")
    yield
    structlog.contextvars.clear_contextvars()
