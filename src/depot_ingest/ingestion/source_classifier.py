"""Forge World / Legends classification of datasheet sources."""

from dataclasses import dataclass

from depot_ingest.common.constants import (
    FORGE_WORLD_MARKERS,
    FORGE_WORLD_SUFFIX,
    LEGENDS_MARKERS,
    LEGENDS_SUFFIX,
)
from depot_ingest.ingestion.models import RawTable


@dataclass(frozen=True)
class SourceClassification:
    """Derived flags for a datasheet source."""

    is_forge_world: bool = False
    is_legends: bool = False


class SourceClassifier:
    """Classify source ids from the Source table.

    A source is Forge World when its name contains "Imperial Armour:" or "Forge World:",
    or ends with "(Forge World)". It is Legends when its name contains "Legends:" or ends
    with "(Warhammer Legends)".
    """

    def __init__(self, sources: RawTable) -> None:
        self.forge_world_ids: set[str] = set()
        self.legends_ids: set[str] = set()

        for source in sources:
            name = source.get("name", "").strip()
            source_id = source.get("id", "")

            if name.endswith(FORGE_WORLD_SUFFIX) or any(m in name for m in FORGE_WORLD_MARKERS):
                self.forge_world_ids.add(source_id)
            if name.endswith(LEGENDS_SUFFIX) or any(m in name for m in LEGENDS_MARKERS):
                self.legends_ids.add(source_id)

    def classify(self, source_id: str | None) -> SourceClassification:
        if not source_id:
            return SourceClassification()
        return SourceClassification(
            is_forge_world=source_id in self.forge_world_ids,
            is_legends=source_id in self.legends_ids,
        )
