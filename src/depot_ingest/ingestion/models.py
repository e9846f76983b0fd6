"""Data models for parsed tables and the produced documents."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from depot_ingest.common.supplements import CODEX_SUPPLEMENT

# One parsed row: column name -> sanitized string. No type coercion happens at parse time.
RawRecord = dict[str, str]
RawTable = list[RawRecord]


class Document(BaseModel):
    """Base for every emitted document.

    Fields are declared in snake_case and serialized with camelCase aliases, matching the
    column names produced by the table parser.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
        frozen=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict with camelCase keys."""
        return self.model_dump(by_alias=True)


class Ability(Document):
    """A datasheet ability.

    Referenced abilities copy id, legend and faction from the canonical Abilities table;
    inline abilities leave them empty. Both take `type` from the join row.
    """

    id: str = ""
    name: str = ""
    legend: str = ""
    faction_id: str = ""
    description: str = ""
    type: str = ""
    parameter: str = ""

    @property
    def is_inline(self) -> bool:
        return not self.id


class LeaderAttachment(Document):
    """A unit the leader datasheet can be attached to."""

    id: str
    slug: str
    name: str
    faction_slug: str


class Datasheet(Document):
    """A unit datasheet, owned by exactly one faction.

    Source columns that are not declared here (role, loadout, transport, ...) are kept as
    extra fields so that the emitted document carries the full source row.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    slug: str
    name: str
    faction_id: str
    faction_slug: str
    source_id: str = ""
    virtual: bool = False
    abilities: list[Ability] = Field(default_factory=list)
    keywords: list[dict[str, str]] = Field(default_factory=list)
    models: list[dict[str, str]] = Field(default_factory=list)
    options: list[dict[str, str]] = Field(default_factory=list)
    wargear: list[dict[str, str]] = Field(default_factory=list)
    unit_composition: list[dict[str, str]] = Field(default_factory=list)
    model_costs: list[dict[str, str]] = Field(default_factory=list)
    stratagems: list[dict[str, str]] = Field(default_factory=list)
    enhancements: list[dict[str, str]] = Field(default_factory=list)
    detachment_abilities: list[dict[str, str]] = Field(default_factory=list)
    leaders: list[LeaderAttachment] = Field(default_factory=list)
    is_forge_world: bool = False
    is_legends: bool = False
    supplement_key: str = CODEX_SUPPLEMENT
    supplement_slug: str | None = None
    supplement_name: str | None = None


class DetachmentSupplement(Document):
    """The supplement a detachment is played from."""

    supplement_key: str
    supplement_label: str


class Faction(Document):
    """A faction with its visible datasheets and faction-scoped rules."""

    id: str
    slug: str
    name: str
    link: str = ""
    datasheets: list[Datasheet] = Field(default_factory=list)
    stratagems: list[dict[str, str]] = Field(default_factory=list)
    enhancements: list[dict[str, str]] = Field(default_factory=list)
    detachment_abilities: list[dict[str, str]] = Field(default_factory=list)
    detachments: list[str] = Field(default_factory=list)
    detachment_supplements: dict[str, DetachmentSupplement] = Field(default_factory=dict)


class IndexEntry(Document):
    """Summary of one faction for client-side browsing."""

    id: str
    slug: str
    name: str
    path: str
    datasheet_count: int = Field(ge=0)
    stratagem_count: int = Field(ge=0)
    enhancement_count: int = Field(ge=0)
    detachment_count: int = Field(ge=0)
