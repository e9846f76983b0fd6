"""Codex supplements, keyed by faction id and source id.

A datasheet published in a supplement (Blood Angels, Deathwatch, ...) is grouped under
that supplement; everything else belongs to the parent codex.
"""

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class SupplementInfo:
    """Supplement a source belongs to."""

    slug: str
    name: str | None = None


SupplementConfig = Mapping[str, Mapping[str, SupplementInfo]]

CODEX_SUPPLEMENT = "codex"
# Label shown for detachments that are not tied to any supplement
CODEX_SUPPLEMENT_LABEL = "None"

SUPPLEMENTS: SupplementConfig = {
    "SM": {
        "000000139": SupplementInfo("codex", "Codex"),
        "000000362": SupplementInfo("codex", "Codex"),
        "000000356": SupplementInfo("codex", "Codex (Legends)"),
        "000000021": SupplementInfo("blood-angels", "Blood Angels"),
        "000000376": SupplementInfo("blood-angels", "Blood Angels (Legends)"),
        "000000023": SupplementInfo("dark-angels", "Dark Angels"),
        "000000373": SupplementInfo("dark-angels", "Dark Angels (Legends)"),
        "000000036": SupplementInfo("space-wolves", "Space Wolves"),
        "000000360": SupplementInfo("space-wolves", "Space Wolves (Legends)"),
        "000000162": SupplementInfo("black-templars", "Black Templars"),
        "000000372": SupplementInfo("black-templars", "Black Templars (Legends)"),
        "000000035": SupplementInfo("deathwatch", "Deathwatch"),
        "000000287": SupplementInfo("ultramarines-legends", "Ultramarines (Legends)"),
        "000000363": SupplementInfo("imperial-agents-legends", "Imperial Agents (Legends)"),
    },
}


def get_supplement_info(
    faction_id: str,
    source_id: str | None,
    supplements: SupplementConfig = SUPPLEMENTS,
) -> SupplementInfo | None:
    """Look up the supplement of a datasheet source.

    Returns:
        The supplement, or None when the faction has no supplements or the source is
        not listed
    """
    if not source_id:
        return None
    return supplements.get(faction_id, {}).get(source_id)


def supplement_key(slug: str | None) -> str:
    """Grouping key of a supplement slug; datasheets without one fall under the codex."""
    return (slug or "").strip().lower() or CODEX_SUPPLEMENT


def supplement_label(key: str, name: str | None = None) -> str:
    """Display label of a supplement ("None" for the codex)."""
    if supplement_key(key) == CODEX_SUPPLEMENT:
        return CODEX_SUPPLEMENT_LABEL
    return name or " ".join(part.capitalize() for part in key.split("-"))
