"""Value records produced and consumed during one reconciliation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .entity import FieldValue, NormalizedEntity
    from .enums import Disposition, EntityKind


@dataclass(frozen=True, slots=True)
class EntityPair:
    guide: NormalizedEntity
    codex: NormalizedEntity

    @property
    def kind(self) -> EntityKind:
        return self.guide.kind

    @property
    def identifier(self) -> str:
        return self.guide.identifier


@dataclass(frozen=True, slots=True)
class Discrepancy:
    kind: EntityKind
    identifier: str
    field: str
    guide_value: FieldValue
    codex_value: FieldValue
    disposition: Disposition | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class WriteBackRequest:
    """Correct one field on the guide, resubmitting its co-dependent fields."""

    kind: EntityKind
    identifier: str
    source_id: str
    field: str
    value: FieldValue
    co_fields: Mapping[str, FieldValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "co_fields", MappingProxyType(dict(self.co_fields)))

    @property
    def values(self) -> dict[str, FieldValue]:
        """Every field submitted by this request, target included."""

        return {**self.co_fields, self.field: self.value}
