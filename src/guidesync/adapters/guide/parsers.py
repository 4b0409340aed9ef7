"""Parsers for guide admin change forms, one per entity kind."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, ClassVar

from guidesync.domain.model import (
    RAID_TAGS,
    EntityBuilder,
    EntityKind,
    EntityRef,
    Origin,
    ParseError,
    codex_identifier,
    guide_placeholder,
    schema_for,
)
from guidesync.domain.reconciliation.normalize import metadata_ref

from .forms import parse_form

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from guidesync.domain.model import FieldSpec, FieldValue, NormalizedEntity, RemoteDocument

    from .forms import FormField

type Reader = Callable[[FormField, FieldSpec, str], FieldValue]

RARITY_CODES: dict[str, str] = {
    "NO": "none",
    "CO": "common",
    "SP": "superior",
    "FM": "famed",
    "LG": "legendary",
    "OR": "ornate",
}

_INTEGER = re.compile(r"^[+-]?\d+$")
_DECIMAL = re.compile(r"^[+-]?\d+(?:\.\d+)?$")
_CHANGE_URL = re.compile(r"/(?P<id>\d+)/change/?$")


def read_text(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
    del spec, locator
    return field.value or ""


def read_number(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
    raw = (field.value or "").strip()
    if spec.decimal and _DECIMAL.match(raw):
        value = float(raw)
        return int(value) if value.is_integer() and "." not in raw else value
    if _INTEGER.match(raw):
        return int(raw, 10)
    raise ParseError(spec.name, raw, locator=locator)


def read_rarity(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
    code = (field.value or "").strip().upper()
    if code not in RARITY_CODES:
        raise ParseError(spec.name, code, locator=locator)
    return RARITY_CODES[code]


def read_flag(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
    del spec, locator
    return field.value == "on"


def read_label(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
    """The label of the selected option; an empty select reads as ``None``."""

    del spec, locator
    if not field.value:
        return None
    return " ".join((field.label or "").split()) or None


def read_labels(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
    del spec, locator
    return frozenset(label.strip().casefold() for _, label in field.selected if label.strip())


def read_raid_tags(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
    """Raid spawns selected in the spawns widget, which the codex shows as tags."""

    del spec, locator
    keys = (_label_key(label) for _, label in field.selected)
    return frozenset(key for key in keys if key in RAID_TAGS)


def read_event_spawns(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
    del spec, locator
    return frozenset(
        metadata_ref(EntityKind.SPAWN, label, local_id=value)
        for value, label in field.selected
        if value and _label_key(label) not in RAID_TAGS
    )


def _label_key(label: str) -> str:
    return " ".join(label.split()).casefold()


def metadata_reference(kind: EntityKind) -> Reader:
    def read(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
        del spec, locator
        if not field.value:
            return None
        return metadata_ref(kind, field.label or "", local_id=field.value)

    return read


def metadata_references(kind: EntityKind) -> Reader:
    def read(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
        del spec, locator
        return frozenset(
            metadata_ref(kind, label, local_id=value) for value, label in field.selected if value
        )

    return read


def entity_references(kind: EntityKind) -> Reader:
    """Entity references stay keyed by guide id until the index resolves them."""

    def read(field: FormField, spec: FieldSpec, locator: str) -> FieldValue:
        del spec, locator
        return frozenset(
            EntityRef(kind, guide_placeholder(kind, value), label, value)
            for value, label in field.selected
            if value
        )

    return read


class GuideFormParser:
    """Read one admin change form into a normalized guide record.

    Subclasses list a reader per schema field. The form field carrying each
    value has the same name as the schema field unless ``sources`` names it.
    """

    kind: ClassVar[EntityKind]
    origin: ClassVar[Origin] = Origin.GUIDE
    readers: ClassVar[Mapping[str, Reader]]
    sources: ClassVar[Mapping[str, str]] = {}

    @property
    def form_id(self) -> str:
        return f"{self.kind}_form"

    def parse(self, document: RemoteDocument) -> NormalizedEntity:
        locator = document.url
        local_id = local_id_from_url(document.url)
        schema = schema_for(self.kind)
        widgets = dict.fromkeys(self.sources.get(name, name) for name in self.readers)
        form = parse_form(document.text, self.form_id, ("codex", *widgets), locator=locator)

        codex = (form["codex"].value or "").strip()
        identifier = codex_identifier(codex) if codex else guide_placeholder(self.kind, local_id)
        builder = EntityBuilder(
            schema, identifier, Origin.GUIDE, source_id=local_id, locator=locator
        )
        for name, reader in self.readers.items():
            widget = form[self.sources.get(name, name)]
            builder.set(name, reader(widget, schema.spec(name), locator))
        return builder.build()


def local_id_from_url(url: str) -> str:
    path = url.split("?", 1)[0]
    match = _CHANGE_URL.search(path)
    if match is None:
        raise ParseError("id", url, locator=url)
    return match.group("id")


_STATUSES = metadata_references(EntityKind.STATUS)


class GuideItemParser(GuideFormParser):
    kind = EntityKind.ITEM
    readers: ClassVar[Mapping[str, Reader]] = {
        "name": read_text,
        "tier": read_number,
        "description": read_text,
        "image_name": read_text,
        "rarity": read_rarity,
        **{
            stat: read_number
            for stat in (
                "attack",
                "magic",
                "defense",
                "resistance",
                "hp",
                "mana",
                "dexterity",
                "ward",
                "crit",
                "foresight",
                "base_adornment_slots",
                "orn_bonus",
                "gold_bonus",
                "drop_bonus",
                "exp_bonus",
            )
        },
        "has_slots": read_flag,
        "element": metadata_reference(EntityKind.ELEMENT),
        "equipped_by": read_labels,
        "causes": _STATUSES,
        "cures": _STATUSES,
        "gives": _STATUSES,
        "prevents": _STATUSES,
        "materials": entity_references(EntityKind.ITEM),
        "ability": read_label,
    }


class GuideMonsterParser(GuideFormParser):
    kind = EntityKind.MONSTER
    readers: ClassVar[Mapping[str, Reader]] = {
        "name": read_text,
        "tier": read_number,
        "image_name": read_text,
        "description": read_text,
        "family": metadata_reference(EntityKind.FAMILY),
        "level": read_number,
        "hp": read_number,
        "spawns": read_event_spawns,
        "tags": read_raid_tags,
        "skills": entity_references(EntityKind.SKILL),
        "drops": entity_references(EntityKind.ITEM),
    }
    sources: ClassVar[Mapping[str, str]] = {"tags": "spawns"}


class GuideSkillParser(GuideFormParser):
    kind = EntityKind.SKILL
    readers: ClassVar[Mapping[str, Reader]] = {
        "name": read_text,
        "tier": read_number,
        "description": read_text,
        "bought": read_flag,
        "causes": _STATUSES,
        "gives": _STATUSES,
    }


class GuidePetParser(GuideFormParser):
    kind = EntityKind.PET
    readers: ClassVar[Mapping[str, Reader]] = {
        "name": read_text,
        "tier": read_number,
        "image_name": read_text,
        "description": read_text,
        "skills": entity_references(EntityKind.SKILL),
    }


GUIDE_PARSERS: dict[EntityKind, GuideFormParser] = {
    parser.kind: parser
    for parser in (GuideItemParser(), GuideMonsterParser(), GuideSkillParser(), GuidePetParser())
}
