"""Constants describing the Wahapedia export and the produced documents."""

DEFAULT_SOURCE_URL = "http://wahapedia.ru/wh40k10ed/"

# Source tables, keyed by the name the assembler uses for them.
# Order is the download / parse order.
SOURCE_TABLES = {
    "factions": "Factions.csv",
    "sources": "Source.csv",
    "datasheets": "Datasheets.csv",
    "datasheet_abilities": "Datasheets_abilities.csv",
    "datasheet_keywords": "Datasheets_keywords.csv",
    "datasheet_models": "Datasheets_models.csv",
    "datasheet_options": "Datasheets_options.csv",
    "datasheet_wargear": "Datasheets_wargear.csv",
    "datasheet_unit_composition": "Datasheets_unit_composition.csv",
    "datasheet_model_costs": "Datasheets_models_cost.csv",
    "datasheet_stratagems": "Datasheets_stratagems.csv",
    "datasheet_enhancements": "Datasheets_enhancements.csv",
    "datasheet_detachment_abilities": "Datasheets_detachment_abilities.csv",
    "datasheet_leaders": "Datasheets_leader.csv",
    "stratagems": "Stratagems.csv",
    "abilities": "Abilities.csv",
    "enhancements": "Enhancements.csv",
    "detachment_abilities": "Detachment_abilities.csv",
    "last_update": "Last_update.csv",
}

# Raw table format
FIELD_DELIMITER = "|"
ROW_DELIMITER = "\r\n"
BYTE_ORDER_MARK = "\ufeff"

# Source classification markers
FORGE_WORLD_MARKERS = ("Imperial Armour:", "Forge World:")
FORGE_WORLD_SUFFIX = "(Forge World)"
LEGENDS_MARKERS = ("Legends:",)
LEGENDS_SUFFIX = "(Warhammer Legends)"

# Slug namespaces
FACTION_NAMESPACE = "faction"
DATASHEET_NAMESPACE = "datasheet"

# Markup sanitizer vocabulary
BLOCKED_TAGS = frozenset({"script", "style", "noscript", "iframe", "object", "embed"})
UNWRAP_TAGS = frozenset({"a", "i"})
WRAPPED_BLOCK_TAGS = frozenset({"table", "div"})
STRIPPED_ATTRIBUTES = ("style", "width", "height", "cellspacing", "cellpadding", "border")
ABILITY_NAME_CLASS = "abName"

# Output layout
DATA_URL_PREFIX = "/data"
FACTIONS_DIRNAME = "factions"
INDEX_FILENAME = "index.json"
CORE_STRATAGEMS_FILENAME = "core-stratagems.json"
LAST_UPDATE_FILENAME = "last-update.json"
