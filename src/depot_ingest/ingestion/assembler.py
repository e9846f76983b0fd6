"""Relational assembly of parsed source tables into faction documents.

Join policies:

- Fail fast (IntegrityError, nothing is emitted): a datasheet whose faction or own slug
  cannot be resolved, and duplicate faction / datasheet ids.
- Drop and log (the row is left out, a warning is logged and counted): ability,
  stratagem, enhancement and detachment-ability references missing from their canonical
  table, ability rows with neither a reference nor inline text, and leader rows whose
  attached datasheet does not exist.
"""

from collections import Counter, defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field, fields

import structlog

from depot_ingest.common.constants import (
    DATA_URL_PREFIX,
    DATASHEET_NAMESPACE,
    FACTION_NAMESPACE,
    FACTIONS_DIRNAME,
    SOURCE_TABLES,
)
from depot_ingest.common.supplements import (
    CODEX_SUPPLEMENT,
    SUPPLEMENTS,
    SupplementConfig,
    get_supplement_info,
    supplement_key,
    supplement_label,
)
from depot_ingest.ingestion.models import (
    Ability,
    Datasheet,
    DetachmentSupplement,
    Faction,
    IndexEntry,
    LeaderAttachment,
    RawRecord,
    RawTable,
)
from depot_ingest.ingestion.slug_allocator import SlugAllocator
from depot_ingest.ingestion.source_classifier import SourceClassifier
from depot_ingest.utils.exceptions import IngestionError, IntegrityError

logger = structlog.get_logger(__name__)


@dataclass
class SourceData:
    """All nineteen parsed source tables."""

    factions: RawTable
    sources: RawTable
    datasheets: RawTable
    datasheet_abilities: RawTable
    datasheet_keywords: RawTable
    datasheet_models: RawTable
    datasheet_options: RawTable
    datasheet_wargear: RawTable
    datasheet_unit_composition: RawTable
    datasheet_model_costs: RawTable
    datasheet_stratagems: RawTable
    datasheet_enhancements: RawTable
    datasheet_detachment_abilities: RawTable
    datasheet_leaders: RawTable
    stratagems: RawTable
    abilities: RawTable
    enhancements: RawTable
    detachment_abilities: RawTable
    last_update: RawTable

    @classmethod
    def from_tables(cls, tables: Mapping[str, RawTable]) -> "SourceData":
        """Build from a mapping of table key to records.

        Raises:
            IngestionError: If any of the nineteen tables is missing
        """
        missing = [key for key in SOURCE_TABLES if key not in tables]
        if missing:
            raise IngestionError(f"Missing source tables: {', '.join(missing)}")
        return cls(**{f.name: tables[f.name] for f in fields(cls)})


@dataclass
class AssemblyResult:
    """Everything the document emitter writes."""

    factions: list[Faction]
    index: list[IndexEntry]
    core_stratagems: list[RawRecord]
    last_update: RawRecord | None
    dropped_joins: dict[str, int] = field(default_factory=dict)

    @property
    def datasheet_count(self) -> int:
        return sum(len(faction.datasheets) for faction in self.factions)


def _group_by(table: RawTable, key: str) -> dict[str, RawTable]:
    groups: dict[str, RawTable] = defaultdict(list)
    for record in table:
        groups[record.get(key, "")].append(record)
    return groups


def _first_by_id(table: RawTable) -> dict[str, RawRecord]:
    index: dict[str, RawRecord] = {}
    for record in table:
        index.setdefault(record.get("id", ""), record)
    return index


def _is_true(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


def build_detachment_supplement_index(
    datasheets: list[Datasheet], detachments: list[str] | None = None
) -> dict[str, DetachmentSupplement]:
    """Map each detachment to the supplement it is played from.

    A detachment belongs to the supplement of the first datasheet linked to it through a
    detachment ability that is not a codex datasheet. Detachments linked only to codex
    datasheets, or not linked at all, fall back to the codex.

    Args:
        datasheets: Datasheets with their resolved detachment abilities
        detachments: Detachment names that get an entry even without linked datasheets

    Returns:
        Mapping of detachment name to its supplement, in first-seen order
    """
    codex = DetachmentSupplement(
        supplement_key=CODEX_SUPPLEMENT, supplement_label=supplement_label(CODEX_SUPPLEMENT)
    )
    index: dict[str, DetachmentSupplement] = dict.fromkeys(detachments or [], codex)

    for datasheet in datasheets:
        for ability in datasheet.detachment_abilities:
            detachment = ability.get("detachment", "")
            if not detachment:
                continue
            current = index.get(detachment)
            if current is not None and current.supplement_key != CODEX_SUPPLEMENT:
                continue
            index[detachment] = DetachmentSupplement(
                supplement_key=datasheet.supplement_key,
                supplement_label=supplement_label(
                    datasheet.supplement_key, datasheet.supplement_name
                ),
            )
    return index


class RelationalAssembler:
    """Join the parsed tables into nested Faction documents.

    Slugs for every faction and every datasheet are allocated before any join runs, since
    leader attachments can point at datasheets of other factions.

    Example:
        >>> assembler = RelationalAssembler(SourceData.from_tables(tables), SlugAllocator())
        >>> result = assembler.assemble()
        >>> [faction.slug for faction in result.factions]
        ['space-marines', 'orks']
    """

    def __init__(
        self,
        data: SourceData,
        allocator: SlugAllocator,
        supplements: SupplementConfig = SUPPLEMENTS,
    ) -> None:
        self.data = data
        self.allocator = allocator
        self.supplements = supplements
        self.logger = logger.bind(component="relational_assembler")
        self.dropped: Counter[str] = Counter()

        self.faction_slugs: dict[str, str] = {}
        self.datasheet_slugs: dict[str, str] = {}

        self._datasheets_by_id = _first_by_id(data.datasheets)
        self._classifier = SourceClassifier(data.sources)

        self._abilities = _first_by_id(data.abilities)
        self._stratagems = _first_by_id(data.stratagems)
        self._enhancements = _first_by_id(data.enhancements)
        self._detachment_abilities = _first_by_id(data.detachment_abilities)

        self._ability_rows = _group_by(data.datasheet_abilities, "datasheetId")
        self._keyword_rows = _group_by(data.datasheet_keywords, "datasheetId")
        self._model_rows = _group_by(data.datasheet_models, "datasheetId")
        self._option_rows = _group_by(data.datasheet_options, "datasheetId")
        self._wargear_rows = _group_by(data.datasheet_wargear, "datasheetId")
        self._composition_rows = _group_by(data.datasheet_unit_composition, "datasheetId")
        self._model_cost_rows = _group_by(data.datasheet_model_costs, "datasheetId")
        self._stratagem_rows = _group_by(data.datasheet_stratagems, "datasheetId")
        self._enhancement_rows = _group_by(data.datasheet_enhancements, "datasheetId")
        self._detachment_ability_rows = _group_by(
            data.datasheet_detachment_abilities, "datasheetId"
        )
        self._leader_rows: dict[str, RawTable] = defaultdict(list)
        for row in data.datasheet_leaders:
            leader_id, _ = self._leader_keys(row)
            self._leader_rows[leader_id].append(row)

    def assemble(self) -> AssemblyResult:
        """Run slug allocation and every join.

        Returns:
            Faction documents in source order with their index entries

        Raises:
            IntegrityError: If a datasheet cannot be tied to a faction or a slug
        """
        self.dropped = Counter()
        self.allocate_slugs()
        datasheet_factions = self._resolve_datasheet_factions()

        factions: list[Faction] = []
        index: list[IndexEntry] = []
        for faction_row in self.data.factions:
            faction = self._build_faction(faction_row, datasheet_factions)
            factions.append(faction)
            index.append(self._build_index_entry(faction))

        core_stratagems = [s for s in self.data.stratagems if not s.get("factionId")]
        last_update = self.data.last_update[0] if self.data.last_update else None

        self.logger.info(
            "assembly_complete",
            factions=len(factions),
            datasheets=sum(len(f.datasheets) for f in factions),
            core_stratagems=len(core_stratagems),
            dropped_joins=dict(self.dropped),
        )

        return AssemblyResult(
            factions=factions,
            index=index,
            core_stratagems=core_stratagems,
            last_update=last_update,
            dropped_joins=dict(self.dropped),
        )

    def allocate_slugs(self) -> None:
        """Allocate faction slugs, then datasheet slugs, each in source order.

        Raises:
            IntegrityError: If a faction or datasheet id appears twice
        """
        self.faction_slugs = self._allocate(self.data.factions, FACTION_NAMESPACE)
        self.datasheet_slugs = self._allocate(self.data.datasheets, DATASHEET_NAMESPACE)

    def _allocate(self, table: RawTable, namespace: str) -> dict[str, str]:
        slugs: dict[str, str] = {}
        for record in table:
            record_id = record.get("id", "")
            if record_id in slugs:
                raise IntegrityError(f"Duplicate {namespace} id {record_id!r}")
            slugs[record_id] = self.allocator.allocate(
                record.get("name", ""), namespace, owner=record_id
            )
        return slugs

    def _resolve_datasheet_factions(self) -> dict[str, RawTable]:
        """Check every datasheet against the slug maps and group them by faction.

        Every datasheet is checked, virtual ones included, before any document is built.
        """
        by_faction: dict[str, RawTable] = defaultdict(list)
        for datasheet in self.data.datasheets:
            datasheet_id = datasheet.get("id", "")
            faction_id = datasheet.get("factionId", "")

            if faction_id not in self.faction_slugs:
                raise IntegrityError(
                    f"Datasheet {datasheet_id!r} ({datasheet.get('name', '')}) references "
                    f"unknown faction {faction_id!r}"
                )
            if datasheet_id not in self.datasheet_slugs:
                raise IntegrityError(f"Datasheet {datasheet_id!r} has no slug")

            by_faction[faction_id].append(datasheet)
        return by_faction

    def _build_faction(self, row: RawRecord, datasheet_factions: dict[str, RawTable]) -> Faction:
        faction_id = row.get("id", "")

        datasheets = [
            self._build_datasheet(datasheet)
            for datasheet in datasheet_factions.get(faction_id, [])
            if not _is_true(datasheet.get("virtual"))
        ]
        stratagems = [s for s in self.data.stratagems if s.get("factionId") == faction_id]
        enhancements = [e for e in self.data.enhancements if e.get("factionId") == faction_id]
        detachment_abilities = [
            d for d in self.data.detachment_abilities if d.get("factionId") == faction_id
        ]

        detachments: list[str] = []
        for record in (*stratagems, *enhancements, *detachment_abilities):
            name = record.get("detachment", "")
            if name and name not in detachments:
                detachments.append(name)

        faction = Faction(
            id=faction_id,
            slug=self.faction_slugs[faction_id],
            name=row.get("name", ""),
            link=row.get("link", ""),
            datasheets=datasheets,
            stratagems=stratagems,
            enhancements=enhancements,
            detachment_abilities=detachment_abilities,
            detachments=detachments,
            detachment_supplements=build_detachment_supplement_index(datasheets, detachments),
        )
        self.logger.debug(
            "faction_assembled",
            faction_id=faction_id,
            slug=faction.slug,
            datasheets=len(datasheets),
        )
        return faction

    def _build_datasheet(self, row: RawRecord) -> Datasheet:
        datasheet_id = row["id"]
        classification = self._classifier.classify(row.get("sourceId"))
        supplement = get_supplement_info(row["factionId"], row.get("sourceId"), self.supplements)
        supplement_slug = supplement.slug if supplement else None

        return Datasheet.model_validate(
            {
                **row,
                "slug": self.datasheet_slugs[datasheet_id],
                "factionSlug": self.faction_slugs[row["factionId"]],
                "virtual": _is_true(row.get("virtual")),
                "abilities": self._resolve_abilities(datasheet_id),
                "keywords": self._keyword_rows.get(datasheet_id, []),
                "models": self._model_rows.get(datasheet_id, []),
                "options": self._option_rows.get(datasheet_id, []),
                "wargear": self._wargear_rows.get(datasheet_id, []),
                "unitComposition": self._composition_rows.get(datasheet_id, []),
                "modelCosts": self._model_cost_rows.get(datasheet_id, []),
                "stratagems": self._resolve_references(
                    "stratagem",
                    datasheet_id,
                    self._stratagem_rows,
                    "stratagemId",
                    self._stratagems,
                ),
                "enhancements": self._resolve_references(
                    "enhancement",
                    datasheet_id,
                    self._enhancement_rows,
                    "enhancementId",
                    self._enhancements,
                ),
                "detachmentAbilities": self._resolve_references(
                    "detachment_ability",
                    datasheet_id,
                    self._detachment_ability_rows,
                    "detachmentAbilityId",
                    self._detachment_abilities,
                ),
                "leaders": self._resolve_leaders(datasheet_id),
                "isForgeWorld": classification.is_forge_world,
                "isLegends": classification.is_legends,
                "supplementKey": supplement_key(supplement_slug),
                "supplementSlug": supplement_slug,
                "supplementName": supplement.name if supplement else None,
            }
        )

    def _resolve_abilities(self, datasheet_id: str) -> list[Ability]:
        abilities: list[Ability] = []
        for row in self._ability_rows.get(datasheet_id, []):
            ability_id = row.get("abilityId", "")

            if ability_id:
                canonical = self._abilities.get(ability_id)
                if canonical is None:
                    self._drop("ability", datasheet_id=datasheet_id, reference_id=ability_id)
                    continue
                abilities.append(
                    Ability.model_validate(
                        {
                            **canonical,
                            "type": row.get("type", ""),
                            "parameter": row.get("parameter", ""),
                        }
                    )
                )
            elif row.get("name") or row.get("description"):
                abilities.append(
                    Ability(
                        name=row.get("name", ""),
                        description=row.get("description", ""),
                        type=row.get("type", ""),
                        parameter=row.get("parameter", ""),
                    )
                )
            else:
                self._drop("ability", datasheet_id=datasheet_id, reference_id="")
        return abilities

    def _resolve_references(
        self,
        join: str,
        datasheet_id: str,
        join_rows: dict[str, RawTable],
        reference_key: str,
        canonical: dict[str, RawRecord],
    ) -> list[RawRecord]:
        resolved: list[RawRecord] = []
        for row in join_rows.get(datasheet_id, []):
            reference_id = row.get(reference_key, "")
            record = canonical.get(reference_id)
            if record is None:
                self._drop(join, datasheet_id=datasheet_id, reference_id=reference_id)
                continue
            resolved.append(record)
        return resolved

    def _resolve_leaders(self, datasheet_id: str) -> list[LeaderAttachment]:
        leaders: list[LeaderAttachment] = []
        for row in self._leader_rows.get(datasheet_id, []):
            _, attached_id = self._leader_keys(row)
            slug = self.datasheet_slugs.get(attached_id)
            attached = self._datasheets_by_id.get(attached_id)
            if slug is None or attached is None:
                self._drop("leader", datasheet_id=datasheet_id, reference_id=attached_id)
                continue
            leaders.append(
                LeaderAttachment(
                    id=attached_id,
                    slug=slug,
                    name=attached.get("name", ""),
                    faction_slug=self.faction_slugs[attached["factionId"]],
                )
            )
        return leaders

    @staticmethod
    def _leader_keys(row: RawRecord) -> tuple[str, str]:
        """(leader datasheet id, attached datasheet id) for either header layout."""
        leader_id = row.get("leaderId") or row.get("datasheetId", "")
        attached_id = row.get("attachedId") or row.get("attachedDatasheetId", "")
        return leader_id, attached_id

    def _drop(self, join: str, datasheet_id: str, reference_id: str) -> None:
        self.dropped[join] += 1
        self.logger.warning(
            "join_reference_missing",
            join=join,
            datasheet_id=datasheet_id,
            reference_id=reference_id,
        )

    @staticmethod
    def _build_index_entry(faction: Faction) -> IndexEntry:
        return IndexEntry(
            id=faction.id,
            slug=faction.slug,
            name=faction.name,
            path=f"{DATA_URL_PREFIX}/{FACTIONS_DIRNAME}/{faction.id}.json",
            datasheet_count=len(faction.datasheets),
            stratagem_count=len(faction.stratagems),
            enhancement_count=len(faction.enhancements),
            detachment_count=len(faction.detachments),
        )
