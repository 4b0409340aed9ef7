"""Correlate guide and codex records of one kind."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from guidesync.domain.model import (
    EntityKind,
    EntityPair,
    EntityRef,
    MatchError,
    NormalizedEntity,
    Origin,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from guidesync.domain.model import FieldValue

    from .policy import PolicyTable

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReferenceIndex:
    """Two-way mapping between guide ids and entity identifiers.

    Guide forms reference other entities by their guide id; the codex
    references them by path. The index translates guide placeholders into
    identifiers and identifiers back into guide option values.
    """

    _by_local: dict[tuple[EntityKind, str], EntityRef] = field(default_factory=dict)
    _by_key: dict[tuple[EntityKind, str], str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        records: Iterable[NormalizedEntity],
        metadata: Iterable[NormalizedEntity] = (),
    ) -> ReferenceIndex:
        index = cls()
        for entity in (*records, *metadata):
            index.add(entity)
        return index

    def add(self, entity: NormalizedEntity) -> None:
        if entity.source_id is None:
            return
        ref = EntityRef(entity.kind, entity.identifier, entity.name, entity.source_id)
        self._by_local[(entity.kind, entity.source_id)] = ref
        self._by_key.setdefault((entity.kind, entity.identifier), entity.source_id)

    def __len__(self) -> int:
        return len(self._by_local)

    def resolve(self, ref: EntityRef) -> EntityRef:
        """Return ``ref`` keyed by identifier; unknown guide ids stay placeholders."""

        if not ref.is_placeholder or ref.local_id is None:
            return ref
        resolved = self._by_local.get((ref.kind, ref.local_id))
        if resolved is None:
            log.debug("Unresolved guide reference %s", ref.key)
            return ref
        return EntityRef(ref.kind, resolved.key, ref.label or resolved.label, ref.local_id)

    def local_id(self, ref: EntityRef) -> str | None:
        """Guide id for ``ref``, or ``None`` when the guide does not know it."""

        if ref.local_id is not None and (ref.kind, ref.local_id) in self._by_local:
            return ref.local_id
        return self._by_key.get((ref.kind, ref.key))

    def label(self, ref: EntityRef) -> str | None:
        local_id = self.local_id(ref)
        if local_id is None:
            return None
        return self._by_local[(ref.kind, local_id)].label


def resolve_references(entity: NormalizedEntity, index: ReferenceIndex) -> NormalizedEntity:
    """Replace guide placeholder references in ``entity`` with resolved keys."""

    updates: dict[str, FieldValue] = {}
    for name, value in entity.fields.items():
        if isinstance(value, EntityRef):
            resolved = index.resolve(value)
            if resolved.key != value.key:
                updates[name] = resolved
        elif isinstance(value, frozenset) and any(isinstance(item, EntityRef) for item in value):
            refs = frozenset(index.resolve(item) for item in value if isinstance(item, EntityRef))
            if refs != value:
                updates[name] = refs
    if not updates:
        return entity
    return entity.with_fields(updates)


def attach_dropped_by(
    items: Iterable[NormalizedEntity],
    monsters: Iterable[NormalizedEntity],
) -> list[NormalizedEntity]:
    """Give each guide item the monsters whose resolved drops list it.

    The guide keeps drops on the monster form only; the codex shows them on
    the item page as well.
    """

    droppers: dict[str, set[EntityRef]] = defaultdict(set)
    for monster in monsters:
        drops = monster.get("drops")
        if not isinstance(drops, frozenset):
            continue
        ref = EntityRef(EntityKind.MONSTER, monster.identifier, monster.name, monster.source_id)
        for drop in drops:
            if isinstance(drop, EntityRef) and drop.kind is EntityKind.ITEM:
                droppers[drop.key].add(ref)
    return [
        item.with_fields({"dropped_by": frozenset(droppers.get(item.identifier, ()))})
        for item in items
    ]


def derive_codex_metadata(
    records: Iterable[NormalizedEntity],
) -> dict[EntityKind, list[NormalizedEntity]]:
    """Build metadata records from the metadata references codex pages carry."""

    seen: dict[EntityKind, dict[str, NormalizedEntity]] = defaultdict(dict)
    for record in records:
        for ref in record.references():
            if not ref.kind.is_metadata or ref.key in seen[ref.kind]:
                continue
            seen[ref.kind][ref.key] = NormalizedEntity(
                kind=ref.kind,
                identifier=ref.key,
                origin=Origin.CODEX,
                fields={"name": ref.label},
                locator=record.locator,
            )
    return {
        kind: [by_key[key] for key in sorted(by_key)] for kind, by_key in seen.items()
    }


@dataclass(slots=True)
class MatchResult:
    pairs: list[EntityPair] = field(default_factory=list)
    guide_orphans: list[str] = field(default_factory=list)
    codex_orphans: list[str] = field(default_factory=list)
    errors: list[MatchError] = field(default_factory=list)


def match(
    kind: EntityKind,
    guide_records: Iterable[NormalizedEntity],
    codex_records: Iterable[NormalizedEntity],
    *,
    policy: PolicyTable | None = None,
) -> MatchResult:
    """Pair records by identifier; unpaired identifiers become orphans.

    A guide identifier seen more than once raises no exception: every
    duplicate becomes a ``MatchError``, none of its records is paired or
    diffed, and the identifier is listed as a guide orphan.
    """

    result = MatchResult()
    guide_by_id: dict[str, NormalizedEntity] = {}
    duplicates: list[str] = []
    for record in guide_records:
        if record.identifier in guide_by_id:
            duplicates.append(record.identifier)
            result.errors.append(
                MatchError(
                    kind,
                    record.identifier,
                    f"guide ids {guide_by_id[record.identifier].source_id} and "
                    f"{record.source_id} share this codex entry",
                )
            )
            continue
        guide_by_id[record.identifier] = record

    for identifier in duplicates:
        guide_by_id.pop(identifier, None)

    codex_by_id: dict[str, NormalizedEntity] = {}
    for record in codex_records:
        codex_by_id.setdefault(record.identifier, record)

    for identifier in sorted(guide_by_id.keys() & codex_by_id.keys()):
        result.pairs.append(EntityPair(guide_by_id[identifier], codex_by_id[identifier]))

    guide_orphans = sorted({*(guide_by_id.keys() - codex_by_id.keys()), *duplicates})
    codex_orphans = sorted(codex_by_id.keys() - guide_by_id.keys())
    if policy is not None:
        guide_orphans = [i for i in guide_orphans if not policy.is_accepted_orphan(Origin.GUIDE, i)]
        codex_orphans = [i for i in codex_orphans if not policy.is_accepted_orphan(Origin.CODEX, i)]
    result.guide_orphans = guide_orphans
    result.codex_orphans = codex_orphans
    return result
