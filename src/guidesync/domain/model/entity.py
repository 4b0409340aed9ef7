"""Normalized entity records shared by both document dialects."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from .enums import EntityKind, Origin

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from .schema import EntitySchema

PLACEHOLDER_PREFIX = "guide:"


@dataclass(frozen=True, slots=True)
class EntityRef:
    """Reference to another entity.

    Equality and hashing only look at ``(kind, key)``; ``label`` and
    ``local_id`` are carried for display and for encoding form values.
    """

    kind: EntityKind
    key: str
    label: str = field(default="", compare=False)
    local_id: str | None = field(default=None, compare=False)

    @property
    def is_placeholder(self) -> bool:
        return self.key.startswith(PLACEHOLDER_PREFIX)

    def __str__(self) -> str:
        return self.key


type FieldValue = (
    bool | int | float | str | frozenset[str] | EntityRef | frozenset[EntityRef] | None
)


def guide_placeholder(kind: EntityKind, local_id: str) -> str:
    """Identifier for a guide record that cannot be correlated through the codex."""

    return f"{PLACEHOLDER_PREFIX}{kind}:{local_id}"


def codex_identifier(path: str) -> str:
    """Turn a codex URL or path into an entity identifier.

    ``https://playorna.com/codex/items/ring-of-vitality/`` and
    ``/codex/items/ring-of-vitality/`` both become ``items/ring-of-vitality``.
    """

    path = path.strip()
    if "://" in path:
        path = "/" + path.split("://", 1)[1].partition("/")[2]
    path = path.split("?", 1)[0]
    path = path.removeprefix("/codex/").strip("/")
    return path


@dataclass(frozen=True, slots=True)
class NormalizedEntity:
    """One entity as rendered by one source.

    A field missing from ``fields`` was not exposed by the source; a field
    present with ``None`` was exposed and empty.
    """

    kind: EntityKind
    identifier: str
    origin: Origin
    fields: Mapping[str, FieldValue]
    source_id: str | None = None
    locator: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def has(self, name: str) -> bool:
        return name in self.fields

    def get(self, name: str) -> FieldValue:
        return self.fields.get(name)

    @property
    def name(self) -> str:
        value = self.fields.get("name")
        return value if isinstance(value, str) else self.identifier

    def with_fields(self, updates: Mapping[str, FieldValue]) -> NormalizedEntity:
        merged = dict(self.fields)
        merged.update(updates)
        return replace(self, fields=merged)

    def references(self) -> Iterator[EntityRef]:
        for value in self.fields.values():
            if isinstance(value, EntityRef):
                yield value
            elif isinstance(value, frozenset):
                yield from (item for item in value if isinstance(item, EntityRef))


@dataclass(slots=True)
class EntityBuilder:
    """Accumulate checked field values and emit them in schema order."""

    schema: EntitySchema
    identifier: str
    origin: Origin
    source_id: str | None = None
    locator: str | None = None
    _values: dict[str, FieldValue] = field(default_factory=dict)

    def set(self, name: str, value: FieldValue) -> EntityBuilder:
        self.schema.check(name, value, locator=self.locator)
        self._values[name] = value
        return self

    def build(self) -> NormalizedEntity:
        ordered = {
            spec.name: self._values[spec.name]
            for spec in self.schema.fields
            if spec.name in self._values
        }
        return NormalizedEntity(
            kind=self.schema.kind,
            identifier=self.identifier,
            origin=self.origin,
            fields=ordered,
            source_id=self.source_id,
            locator=self.locator,
        )
