"""Text normalization shared by matching and diffing."""

from __future__ import annotations

import re
import unicodedata

from guidesync.domain.model import EntityKind, EntityRef

_NON_SLUG = re.compile(r"[^a-z0-9]+")
_APOSTROPHES = re.compile(r"['’`]")


def normalize_text(value: str | None) -> str | None:
    """NFKC, casefold and collapse whitespace; ``None`` and blanks stay ``None``."""

    if value is None:
        return None
    text = unicodedata.normalize("NFKC", value)
    text = text.casefold()
    text = " ".join(text.split())
    return text or None


def slugify(value: str) -> str:
    """Lowercase ASCII slug, ``"Pet's Lunch!"`` -> ``"pets-lunch"``."""

    text = unicodedata.normalize("NFKD", value)
    text = text.encode("ascii", "ignore").decode("ascii").lower()
    text = _APOSTROPHES.sub("", text)
    return _NON_SLUG.sub("-", text).strip("-")


def metadata_identifier(kind: EntityKind, name: str) -> str:
    return f"{kind}/{slugify(name)}"


def metadata_ref(kind: EntityKind, label: str, *, local_id: str | None = None) -> EntityRef:
    """Reference to a metadata entity, keyed from its display name."""

    label = " ".join(label.split())
    return EntityRef(kind, metadata_identifier(kind, label), label, local_id)
