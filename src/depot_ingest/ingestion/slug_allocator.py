"""URL-safe identifier allocation for factions and datasheets."""

import re
import unicodedata
from collections.abc import Mapping
from types import MappingProxyType

import structlog
from lxml.html import fragment_fromstring

logger = structlog.get_logger(__name__)


def slugify(name: str, fallback: str = "item") -> str:
    """Turn a display name into a lowercase, hyphenated slug.

    - Reduces sanitized markup to its text ("Tooth &amp; Claw" -> "tooth-claw")
    - Normalizes unicode to ASCII ("Château" -> "chateau")
    - Drops apostrophes ("T'au Empire" -> "tau-empire")
    - Replaces every other run of non-alphanumerics with a single hyphen

    Args:
        name: Display name
        fallback: Slug used when nothing alphanumeric survives

    Returns:
        Slug string
    """
    normalized = unicodedata.normalize("NFKD", _plain_text(name))
    ascii_str = normalized.encode("ascii", "ignore").decode("ascii").lower()

    slug = re.sub(r"['`]", "", ascii_str)
    slug = re.sub(r"[^a-z0-9]+", "-", slug).strip("-")

    return slug or fallback


def _plain_text(name: str) -> str:
    """Text content of a name that may carry entities or inline tags."""
    if "<" not in name and "&" not in name:
        return name
    return fragment_fromstring(name, create_parent="div").text_content()


class SlugAllocator:
    """Allocate slugs that are unique within a namespace.

    Each namespace ("faction", "datasheet") has its own registry. The first claimant of a
    slug gets it bare; later claimants get "-2", "-3", ... in call order, so allocating over
    the same input in the same order always gives the same result.

    Example:
        >>> allocator = SlugAllocator()
        >>> allocator.allocate("Captain", "datasheet")
        'captain'
        >>> allocator.allocate("Captain", "datasheet")
        'captain-2'
        >>> allocator.allocate("Captain", "faction")
        'captain'
    """

    def __init__(self) -> None:
        self._registries: dict[str, dict[str, str]] = {}

    def allocate(self, name: str, namespace: str, owner: str | None = None) -> str:
        """Allocate a unique slug for a name.

        Args:
            name: Display name to derive the slug from
            namespace: Uniqueness scope
            owner: Optional id of the record claiming the slug, kept in the registry

        Returns:
            Slug unique within the namespace
        """
        registry = self._registries.setdefault(namespace, {})
        base = slugify(name, fallback=namespace)

        slug = base
        suffix = 2
        while slug in registry:
            slug = f"{base}-{suffix}"
            suffix += 1

        if slug != base:
            logger.debug(
                "slug_collision_resolved",
                namespace=namespace,
                name=name,
                base=base,
                slug=slug,
                owner=owner,
            )

        registry[slug] = owner if owner is not None else name
        return slug

    def registry(self, namespace: str) -> Mapping[str, str]:
        """Read-only view of the slugs taken in a namespace (slug -> owner)."""
        return MappingProxyType(self._registries.get(namespace, {}))
