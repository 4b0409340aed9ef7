"""Parsers for codex pages, one per entity kind."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from guidesync.domain.model import (
    RAID_TAGS,
    EntityBuilder,
    EntityKind,
    EntityRef,
    Origin,
    ParseError,
    codex_identifier,
    schema_for,
)
from guidesync.domain.reconciliation.normalize import metadata_ref

from .page import read_codex_page, strip_chance

if TYPE_CHECKING:
    from guidesync.domain.model import FieldValue, NormalizedEntity, RemoteDocument

    from .page import CodexPage, SectionEntry

ITEM_STATS: dict[str, str] = {
    "Attack": "attack",
    "Magic": "magic",
    "Defense": "defense",
    "Resistance": "resistance",
    "HP": "hp",
    "Mana": "mana",
    "Dexterity": "dexterity",
    "Ward": "ward",
    "Crit": "crit",
    "Foresight": "foresight",
    "Adornment Slots": "base_adornment_slots",
    "Orn Bonus": "orn_bonus",
    "Gold Bonus": "gold_bonus",
    "Luck Bonus": "drop_bonus",
    "EXP Bonus": "exp_bonus",
}

# Labels the codex shows that the guide does not model (mostly affixes).
UNMODELED_STATS = frozenset(
    {
        "View distance",
        "View Distance",
        "Blacksmith Time",
        "Drop Quality",
        "Dungeon Cooldown",
        "Gifts",
        "Godforge",
        "Line Catches",
        "Memory Hunting",
        "Monster attraction",
        "Monster Encounters",
        "Monster Power",
        "Questing",
        "Quest Rewards",
        "Raid Rewards",
        "Arcane Damage",
        "Dark Damage",
        "Dragon Damage",
        "Earthen Damage",
        "Fire Damage",
        "Holy Damage",
        "Lightning Damage",
        "Water Damage",
        "Dark Res",
        "Holy Res",
        "HP-Ward Recovery",
        "Mana-Ward Recovery",
        "Ward Absorption",
        "Ward Power",
        "Ward Recovery",
        "Ward Start",
        "Ward Turns",
        "Apex",
        "Apex Rate",
        "Apex Start",
        "Avidity",
        "Manaflask Charge",
        "Assassin",
        "Buff Duration",
        "Debuff Duration",
        "Debuff Fade",
        "Effect Damage",
        "Self Damage Reduction",
        "Status Protection",
        "Status Reflection",
        "Beast Taming",
        "Bestial Bond",
        "Follower Act",
        "Follower Stats",
        "Follower/Summon AI",
        "Instant Summon",
        "No Follower Bonus",
        "Summon Pacts",
        "Summon Protection",
        "Summon Stats",
        "Summon Turns",
        "Accuracy",
        "Area Defense",
        "Crit damage",
        "Double Handed",
        "Hybrid Damage",
        "Weapon Proficiency",
        "Chain Damage Chance",
        "Collateral Chance",
        "Collateral Damage",
        "Damage Limit Break",
        "Damage to Ward",
        "Def/Res Penetration",
        "Elemental Weaknesses",
        "Faction Damage",
        "Multi-target Damage",
        "Defend Power",
        "Healing",
        "HP Regen",
        "Life Siphon",
        "Mana Reduction",
        "Mana Regen",
        "Parapet",
        "Turn Reduction",
        "Ult Defense",
        "Ally Effect Chance",
        "Critical Chain",
    }
)

ELEMENTS = frozenset(
    {"Fire", "Water", "Earthen", "Lightning", "Holy", "Dark", "Arcane", "Dragon", "Physical"}
)
CLASSES = ("warrior", "mage", "thief")

_INTEGER = re.compile(r"^[+-]?\d+$")
_DECIMAL = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


@dataclass(slots=True)
class ItemStats:
    values: dict[str, int | float] = field(default_factory=dict)
    element: EntityRef | None = None
    ability: str | None = None


def read_item_stats(lines: tuple[str, ...], *, locator: str | None = None) -> ItemStats:
    """Convert ``Label: value`` lines; bare words are elements or "Two handed"."""

    stats = ItemStats()
    for line in lines:
        label, sep, raw = line.partition(":")
        label = label.strip()
        if not sep:
            if line.startswith("+"):
                stats.ability = line.removeprefix("+").strip() or None
                continue
            if line in ELEMENTS:
                stats.element = metadata_ref(EntityKind.ELEMENT, line)
                continue
            if line == "Two handed":
                continue
            raise ParseError("stats", line, locator=locator)
        if label in UNMODELED_STATS:
            continue
        name = ITEM_STATS.get(label)
        if name is None:
            raise ParseError("stats", line, locator=locator)
        stats.values[name] = _stat_value(name, raw, locator)
    return stats


def _stat_value(name: str, raw: str, locator: str | None) -> int | float:
    value = raw.strip().removesuffix("%").strip().removeprefix("+")
    if _INTEGER.match(value):
        return int(value, 10)
    if name.endswith("_bonus") and _DECIMAL.match(value):
        return float(value)
    raise ParseError(name, raw.strip(), locator=locator)


def status_refs(entries: tuple[SectionEntry, ...]) -> frozenset[EntityRef]:
    return frozenset(metadata_ref(EntityKind.STATUS, strip_chance(entry.name)) for entry in entries)


def linked_refs(
    kind: EntityKind,
    entries: tuple[SectionEntry, ...],
    *,
    field_name: str,
    locator: str | None = None,
) -> frozenset[EntityRef]:
    refs: set[EntityRef] = set()
    for entry in entries:
        if entry.href is None:
            raise ParseError(field_name, entry.name, locator=locator)
        refs.add(EntityRef(kind, codex_identifier(entry.href), entry.name))
    return frozenset(refs)


class CodexPageParser(ABC):
    kind: ClassVar[EntityKind]
    origin: ClassVar[Origin] = Origin.CODEX

    def parse(self, document: RemoteDocument) -> NormalizedEntity:
        locator = document.url
        page = read_codex_page(document.text, locator=locator)
        builder = EntityBuilder(
            schema_for(self.kind),
            codex_identifier(document.url),
            Origin.CODEX,
            locator=locator,
        )
        for name, value in self.read_fields(page, builder.identifier, locator):
            builder.set(name, value)
        return builder.build()

    @abstractmethod
    def read_fields(
        self, page: CodexPage, identifier: str, locator: str
    ) -> list[tuple[str, FieldValue]]: ...


def _common(page: CodexPage, locator: str) -> list[tuple[str, FieldValue]]:
    if page.meta.tier is None:
        raise ParseError("tier", ".codex-page-meta", locator=locator)
    return [("name", page.name), ("tier", page.meta.tier)]


def _description(page: CodexPage) -> list[tuple[str, FieldValue]]:
    for description in page.descriptions:
        if not description.highlight and not description.text.startswith(("Rarity:", "Ability:")):
            return [("description", description.text)]
    return []


class CodexItemParser(CodexPageParser):
    kind = EntityKind.ITEM

    def read_fields(
        self, page: CodexPage, identifier: str, locator: str
    ) -> list[tuple[str, FieldValue]]:
        fields = _common(page, locator)
        fields.extend(_description(page))
        fields.append(("image_name", page.icon))
        if page.meta.rarity is not None:
            fields.append(("rarity", page.meta.rarity.casefold()))
        stats: ItemStats | None = None
        if page.stats is not None:
            # A stat the page does not show is zero.
            stats = read_item_stats(page.stats, locator=locator)
            fields.extend((name, stats.values.get(name, 0)) for name in ITEM_STATS.values())
            fields.append(("has_slots", stats.values.get("base_adornment_slots", 0) != 0))
            fields.append(("element", stats.element))
        if page.meta.useable_by is not None:
            fields.append(("equipped_by", _equipped_by(page.meta.useable_by)))
        fields.extend(
            [
                ("causes", status_refs(page.section("Causes:"))),
                ("cures", status_refs(page.section("Cures:"))),
                ("gives", status_refs(page.section("Gives:"))),
                ("prevents", status_refs(page.section("Immunities:"))),
                (
                    "materials",
                    linked_refs(
                        EntityKind.ITEM,
                        page.section("Upgrade materials:"),
                        field_name="materials",
                        locator=locator,
                    ),
                ),
                ("ability", page.ability or (stats.ability if stats else None)),
                (
                    "dropped_by",
                    linked_refs(
                        EntityKind.MONSTER,
                        page.section("Dropped by:"),
                        field_name="dropped_by",
                        locator=locator,
                    ),
                ),
            ]
        )
        return fields


def _raid_tags(tags: frozenset[str]) -> frozenset[str]:
    return frozenset(tag.casefold() for tag in tags if tag.casefold() in RAID_TAGS)


def _equipped_by(text: str) -> frozenset[str]:
    if text.strip().casefold() == "all":
        return frozenset(CLASSES)
    return frozenset(part.strip().casefold() for part in text.split(",") if part.strip())


class CodexMonsterParser(CodexPageParser):
    """Monsters, bosses and raids.

    Description nodes are, in order: the description (raids only), an optional
    highlighted ``Event: A / B`` line, then ``Family:`` and ``Rarity:``.
    """

    kind = EntityKind.MONSTER

    def read_fields(
        self, page: CodexPage, identifier: str, locator: str
    ) -> list[tuple[str, FieldValue]]:
        fields = _common(page, locator)
        fields.append(("image_name", page.icon))

        descriptions = list(page.descriptions)
        if identifier.startswith("raids/") and descriptions and not descriptions[0].highlight:
            fields.append(("description", descriptions.pop(0).text))

        spawns: frozenset[EntityRef] = frozenset()
        if descriptions and descriptions[0].highlight:
            _, _, events = descriptions.pop(0).text.partition(":")
            spawns = frozenset(
                metadata_ref(EntityKind.SPAWN, event.strip())
                for event in events.split("/")
                if event.strip()
            )
        for description in descriptions:
            label, sep, value = description.text.partition(":")
            if not sep:
                raise ParseError("description", description.text, locator=locator)
            if label.strip() == "Family":
                fields.append(("family", metadata_ref(EntityKind.FAMILY, value.strip())))
            elif label.strip() != "Rarity":
                raise ParseError("description", description.text, locator=locator)

        fields.extend(
            [
                ("spawns", spawns),
                ("tags", _raid_tags(page.tags)),
                (
                    "skills",
                    linked_refs(
                        EntityKind.SKILL,
                        page.section("Abilities:"),
                        field_name="skills",
                        locator=locator,
                    ),
                ),
                (
                    "drops",
                    linked_refs(
                        EntityKind.ITEM,
                        page.section("Drops:"),
                        field_name="drops",
                        locator=locator,
                    ),
                ),
            ]
        )
        return fields


class CodexSkillParser(CodexPageParser):
    kind = EntityKind.SKILL

    def read_fields(
        self, page: CodexPage, identifier: str, locator: str
    ) -> list[tuple[str, FieldValue]]:
        fields = _common(page, locator)
        fields.extend(
            [
                *_description(page),
                ("bought", "Found in Arcanists" in page.tags),
                ("causes", status_refs(page.section("Causes:"))),
                ("gives", status_refs(page.section("Gives:"))),
            ]
        )
        return fields


class CodexPetParser(CodexPageParser):
    kind = EntityKind.PET

    def read_fields(
        self, page: CodexPage, identifier: str, locator: str
    ) -> list[tuple[str, FieldValue]]:
        fields = _common(page, locator)
        fields.extend(
            [
                ("image_name", page.icon),
                *_description(page),
                (
                    "skills",
                    linked_refs(
                        EntityKind.SKILL,
                        page.section("Abilities:"),
                        field_name="skills",
                        locator=locator,
                    ),
                ),
            ]
        )
        return fields


CODEX_PARSERS: dict[EntityKind, CodexPageParser] = {
    parser.kind: parser
    for parser in (CodexItemParser(), CodexMonsterParser(), CodexSkillParser(), CodexPetParser())
}
