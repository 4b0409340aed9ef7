"""Enumerations shared by the normalized entity model."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    ITEM = "item"
    MONSTER = "monster"
    SKILL = "skill"
    PET = "pet"
    ELEMENT = "element"
    FAMILY = "family"
    STATUS = "status"
    SPAWN = "spawn"

    @property
    def is_metadata(self) -> bool:
        return self in METADATA_KINDS


ENTITY_KINDS: tuple[EntityKind, ...] = (
    EntityKind.ITEM,
    EntityKind.MONSTER,
    EntityKind.SKILL,
    EntityKind.PET,
)
METADATA_KINDS: frozenset[EntityKind] = frozenset(
    {EntityKind.ELEMENT, EntityKind.FAMILY, EntityKind.STATUS, EntityKind.SPAWN}
)


class FieldType(StrEnum):
    NUMBER = "number"
    TEXT = "text"
    TAG = "tag"
    TAG_SET = "tag_set"
    REFERENCE = "reference"
    REFERENCE_SET = "reference_set"
    FLAG = "flag"


class Disposition(StrEnum):
    """How a discrepancy is handled once classified."""

    AUTO = "auto"
    NEEDS_REVIEW = "needs_review"
    IGNORED = "ignored"


class Origin(StrEnum):
    GUIDE = "guide"
    CODEX = "codex"
