"""Declared field schemas for every entity kind.

The order of ``EntitySchema.fields`` is the order in which discrepancies are
reported.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .entity import EntityRef
from .enums import EntityKind, FieldType
from .errors import ParseError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .entity import FieldValue

RARITIES = frozenset({"none", "common", "superior", "famed", "legendary", "ornate"})
EQUIPPED_BY = frozenset({"warrior", "mage", "thief"})
# Raid spawns the codex shows as monster tags.
RAID_TAGS = frozenset({"world raid", "kingdom raid", "other realms raid"})


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    type: FieldType
    minimum: float | None = None
    maximum: float | None = None
    decimal: bool = False
    vocabulary: frozenset[str] | None = None
    ref_kind: EntityKind | None = None

    def check(self, value: FieldValue) -> str | None:
        """Return a description of the mismatch, or ``None`` when ``value`` fits."""

        match self.type:
            case FieldType.NUMBER:
                return self._check_number(value)
            case FieldType.TEXT:
                return None if isinstance(value, str) else "expected text"
            case FieldType.TAG:
                if value is None:
                    return None
                if not isinstance(value, str):
                    return "expected a tag"
                return self._check_vocabulary((value,))
            case FieldType.FLAG:
                return None if isinstance(value, bool) else "expected a flag"
            case FieldType.TAG_SET:
                if not isinstance(value, frozenset) or not all(
                    isinstance(item, str) for item in value
                ):
                    return "expected a set of tags"
                return self._check_vocabulary(value)
            case FieldType.REFERENCE:
                if value is None:
                    return None
                return self._check_ref(value)
            case FieldType.REFERENCE_SET:
                if not isinstance(value, frozenset):
                    return "expected a set of references"
                for item in value:
                    if problem := self._check_ref(item):
                        return problem
                return None

    def _check_number(self, value: FieldValue) -> str | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return "expected a number"
        if isinstance(value, float) and not self.decimal:
            return "expected an integer"
        if self.minimum is not None and value < self.minimum:
            return f"{value} is below {self.minimum}"
        if self.maximum is not None and value > self.maximum:
            return f"{value} is above {self.maximum}"
        return None

    def _check_vocabulary(self, values: frozenset[str] | tuple[str, ...]) -> str | None:
        if self.vocabulary is None:
            return None
        unknown = sorted(set(values) - self.vocabulary)
        if unknown:
            return f"unknown value(s) {', '.join(unknown)}"
        return None

    def _check_ref(self, value: object) -> str | None:
        if not isinstance(value, EntityRef):
            return "expected a reference"
        if self.ref_kind is not None and value.kind != self.ref_kind:
            return f"expected a {self.ref_kind} reference, got {value.kind}"
        return None


@dataclass(frozen=True, slots=True)
class EntitySchema:
    kind: EntityKind
    fields: tuple[FieldSpec, ...]

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self.fields)

    def __contains__(self, name: object) -> bool:
        return any(spec.name == name for spec in self.fields)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    def spec(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.kind} has no field {name!r}")

    def check(self, name: str, value: FieldValue, *, locator: str | None = None) -> None:
        """Raise ``ParseError`` when ``value`` does not have the declared type of ``name``."""

        try:
            spec = self.spec(name)
        except KeyError as exc:
            raise ParseError(name, repr(value), locator=locator) from exc
        problem = spec.check(value)
        if problem is not None:
            raise ParseError(name, f"{value!r}: {problem}", locator=locator)


def _number(name: str, minimum: float | None = 0, maximum: float | None = None) -> FieldSpec:
    return FieldSpec(name, FieldType.NUMBER, minimum=minimum, maximum=maximum)


def _decimal(name: str) -> FieldSpec:
    return FieldSpec(name, FieldType.NUMBER, minimum=None, decimal=True)


def _text(name: str) -> FieldSpec:
    return FieldSpec(name, FieldType.TEXT)


def _refs(name: str, kind: EntityKind) -> FieldSpec:
    return FieldSpec(name, FieldType.REFERENCE_SET, ref_kind=kind)


def _flag(name: str) -> FieldSpec:
    return FieldSpec(name, FieldType.FLAG)


NAME = _text("name")
TIER = _number("tier", 1, 12)
DESCRIPTION = _text("description")
IMAGE_NAME = _text("image_name")

ITEM_SCHEMA = EntitySchema(
    EntityKind.ITEM,
    (
        NAME,
        TIER,
        DESCRIPTION,
        IMAGE_NAME,
        FieldSpec("rarity", FieldType.TAG, vocabulary=RARITIES),
        _number("attack", None),
        _number("magic", None),
        _number("defense", None),
        _number("resistance", None),
        _number("hp", None),
        _number("mana", None),
        _number("dexterity", None),
        _number("ward", None),
        _number("crit", None),
        _number("foresight", None),
        _number("base_adornment_slots", 0, 10),
        _flag("has_slots"),
        _decimal("orn_bonus"),
        _decimal("gold_bonus"),
        _decimal("drop_bonus"),
        _decimal("exp_bonus"),
        FieldSpec("element", FieldType.REFERENCE, ref_kind=EntityKind.ELEMENT),
        FieldSpec("equipped_by", FieldType.TAG_SET, vocabulary=EQUIPPED_BY),
        _refs("causes", EntityKind.STATUS),
        _refs("cures", EntityKind.STATUS),
        _refs("gives", EntityKind.STATUS),
        _refs("prevents", EntityKind.STATUS),
        _refs("materials", EntityKind.ITEM),
        # Off-hand skill, compared by name.
        FieldSpec("ability", FieldType.TAG),
        _refs("dropped_by", EntityKind.MONSTER),
    ),
)

MONSTER_SCHEMA = EntitySchema(
    EntityKind.MONSTER,
    (
        NAME,
        TIER,
        IMAGE_NAME,
        DESCRIPTION,
        FieldSpec("family", FieldType.REFERENCE, ref_kind=EntityKind.FAMILY),
        _number("level", 0),
        _number("hp", 0),
        _refs("spawns", EntityKind.SPAWN),
        FieldSpec("tags", FieldType.TAG_SET, vocabulary=RAID_TAGS),
        _refs("skills", EntityKind.SKILL),
        _refs("drops", EntityKind.ITEM),
    ),
)

SKILL_SCHEMA = EntitySchema(
    EntityKind.SKILL,
    (
        NAME,
        TIER,
        DESCRIPTION,
        _flag("bought"),
        _refs("causes", EntityKind.STATUS),
        _refs("gives", EntityKind.STATUS),
    ),
)

PET_SCHEMA = EntitySchema(
    EntityKind.PET,
    (NAME, TIER, IMAGE_NAME, DESCRIPTION, _refs("skills", EntityKind.SKILL)),
)

ENTITY_SCHEMAS: dict[EntityKind, EntitySchema] = {
    EntityKind.ITEM: ITEM_SCHEMA,
    EntityKind.MONSTER: MONSTER_SCHEMA,
    EntityKind.SKILL: SKILL_SCHEMA,
    EntityKind.PET: PET_SCHEMA,
    **{
        kind: EntitySchema(kind, (NAME,))
        for kind in (EntityKind.ELEMENT, EntityKind.FAMILY, EntityKind.STATUS, EntityKind.SPAWN)
    },
}


def schema_for(kind: EntityKind) -> EntitySchema:
    return ENTITY_SCHEMAS[kind]
