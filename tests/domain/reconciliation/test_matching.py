from __future__ import annotations

from guidesync.domain.model import EntityKind, EntityRef, Origin, guide_placeholder
from guidesync.domain.reconciliation import (
    PolicyTable,
    ReferenceIndex,
    attach_dropped_by,
    derive_codex_metadata,
    match,
    resolve_references,
)
from tests.support.fakes import record


def test_pairs_and_orphans() -> None:
    guide = [
        record(EntityKind.ITEM, "items/b", source_id="2"),
        record(EntityKind.ITEM, "items/a", source_id="1"),
        record(EntityKind.ITEM, "items/guide-only", source_id="3"),
    ]
    codex = [
        record(EntityKind.ITEM, "items/a", Origin.CODEX),
        record(EntityKind.ITEM, "items/codex-only", Origin.CODEX),
        record(EntityKind.ITEM, "items/b", Origin.CODEX),
    ]

    result = match(EntityKind.ITEM, guide, codex)

    assert [pair.identifier for pair in result.pairs] == ["items/a", "items/b"]
    assert result.pairs[0].guide.source_id == "1"
    assert result.pairs[0].codex.origin is Origin.CODEX
    assert result.guide_orphans == ["items/guide-only"]
    assert result.codex_orphans == ["items/codex-only"]
    assert result.errors == []


def test_duplicate_guide_identifier_is_reported_and_never_paired() -> None:
    guide = [
        record(EntityKind.ITEM, "items/a", source_id="1"),
        record(EntityKind.ITEM, "items/a", source_id="9"),
        record(EntityKind.ITEM, "items/b", source_id="2"),
    ]
    codex = [
        record(EntityKind.ITEM, "items/a", Origin.CODEX),
        record(EntityKind.ITEM, "items/b", Origin.CODEX),
    ]

    result = match(EntityKind.ITEM, guide, codex)

    assert [pair.identifier for pair in result.pairs] == ["items/b"]
    assert result.guide_orphans == ["items/a"]
    assert result.codex_orphans == []
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.identifier == "items/a"
    assert "1" in error.reason and "9" in error.reason


def test_accepted_orphans_are_not_reported() -> None:
    policy = PolicyTable.from_mapping(
        {"orphans": {"guide": ["items/retired"], "codex": ["items/unreleased"]}}
    )
    guide = [record(EntityKind.ITEM, "items/retired", source_id="1")]
    codex = [record(EntityKind.ITEM, "items/unreleased", Origin.CODEX)]

    result = match(EntityKind.ITEM, guide, codex, policy=policy)

    assert result.guide_orphans == []
    assert result.codex_orphans == []


def test_reference_index_resolves_guide_ids() -> None:
    ring = record(EntityKind.ITEM, "items/ring", source_id="17", name="Ring")
    regen = record(EntityKind.STATUS, "status/regen", source_id="7", name="Regen")
    index = ReferenceIndex.build([ring], [regen])

    placeholder = EntityRef(EntityKind.ITEM, guide_placeholder(EntityKind.ITEM, "17"), "", "17")
    unknown = EntityRef(EntityKind.ITEM, guide_placeholder(EntityKind.ITEM, "99"), "X", "99")

    assert len(index) == 2
    resolved = index.resolve(placeholder)
    assert resolved == EntityRef(EntityKind.ITEM, "items/ring")
    assert resolved.label == "Ring"
    assert index.resolve(unknown) is unknown
    assert index.local_id(EntityRef(EntityKind.ITEM, "items/ring")) == "17"
    assert index.local_id(EntityRef(EntityKind.STATUS, "status/regen")) == "7"
    assert index.local_id(EntityRef(EntityKind.STATUS, "status/burning")) is None
    assert index.label(EntityRef(EntityKind.ITEM, "items/ring")) == "Ring"


def test_resolve_references_rewrites_only_placeholders() -> None:
    index = ReferenceIndex.build([record(EntityKind.SKILL, "spells/fireball", source_id="21")])
    family = EntityRef(EntityKind.FAMILY, "family/slime", "Slime", "4")
    monster = record(
        EntityKind.MONSTER,
        "monsters/slime",
        source_id="30",
        family=family,
        skills=frozenset(
            {EntityRef(EntityKind.SKILL, guide_placeholder(EntityKind.SKILL, "21"), "Fb", "21")}
        ),
    )

    resolved = resolve_references(monster, index)

    assert resolved.get("skills") == frozenset({EntityRef(EntityKind.SKILL, "spells/fireball")})
    assert resolved.get("family") is family
    unchanged = record(EntityKind.MONSTER, "monsters/bat", family=family)
    assert resolve_references(unchanged, index) is unchanged


def test_attach_dropped_by_inverts_monster_drops() -> None:
    ring_ref = EntityRef(EntityKind.ITEM, "items/ring")
    slime = record(
        EntityKind.MONSTER,
        "monsters/slime",
        source_id="30",
        name="Slime",
        drops=frozenset({ring_ref}),
    )
    bat = record(EntityKind.MONSTER, "monsters/bat", source_id="31", drops=frozenset({ring_ref}))
    ring = record(EntityKind.ITEM, "items/ring", source_id="17")
    lonely = record(EntityKind.ITEM, "items/lonely", source_id="18")

    attached = attach_dropped_by([ring, lonely], [slime, bat])

    assert attached[0].get("dropped_by") == frozenset(
        {
            EntityRef(EntityKind.MONSTER, "monsters/slime"),
            EntityRef(EntityKind.MONSTER, "monsters/bat"),
        }
    )
    assert attached[1].has("dropped_by")
    assert attached[1].get("dropped_by") == frozenset()
    assert not ring.has("dropped_by")


def test_derive_codex_metadata() -> None:
    regen = EntityRef(EntityKind.STATUS, "status/regen", "Regen")
    burning = EntityRef(EntityKind.STATUS, "status/burning", "Burning")
    ring = record(
        EntityKind.ITEM,
        "items/ring",
        Origin.CODEX,
        gives=frozenset({regen}),
        causes=frozenset({burning}),
        materials=frozenset({EntityRef(EntityKind.ITEM, "items/lesser-ring")}),
        element=None,
    )
    fireball = record(
        EntityKind.SKILL, "spells/fireball", Origin.CODEX, causes=frozenset({burning})
    )

    derived = derive_codex_metadata([ring, fireball])

    assert set(derived) == {EntityKind.STATUS}
    statuses = derived[EntityKind.STATUS]
    assert [entity.identifier for entity in statuses] == ["status/burning", "status/regen"]
    assert statuses[1].get("name") == "Regen"
    assert all(entity.origin is Origin.CODEX for entity in statuses)
