from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from guidesync.domain.model import (
    Discrepancy,
    Disposition,
    EntityKind,
    EntityRef,
    SchemaError,
)
from guidesync.domain.reconciliation import PolicyTable, build_write_back, classify
from tests.support.fakes import record

if TYPE_CHECKING:
    from guidesync.domain.model import FieldValue, NormalizedEntity

RING = "items/ring-of-vitality"


def _guide_ring() -> NormalizedEntity:
    return record(
        EntityKind.ITEM,
        RING,
        source_id="17",
        name="Ring of Vitality",
        tier=3,
        attack=10,
        rarity="common",
        equipped_by=frozenset({"warrior"}),
        element=None,
    )


def _auto(field: str, guide_value: FieldValue, codex_value: FieldValue) -> Discrepancy:
    return Discrepancy(
        EntityKind.ITEM, RING, field, guide_value, codex_value, disposition=Disposition.AUTO
    )


def test_attack_correction_carries_name_and_tier(default_policy: PolicyTable) -> None:
    request = build_write_back(_auto("attack", 10, 12), _guide_ring(), default_policy.mutations)

    assert request.source_id == "17"
    assert request.field == "attack"
    assert request.value == 12
    assert dict(request.co_fields) == {"name": "Ring of Vitality", "tier": 3}


def test_required_co_fields_follow_the_target(default_policy: PolicyTable) -> None:
    fire = EntityRef(EntityKind.ELEMENT, "element/fire", "Fire")

    request = build_write_back(
        _auto("element", None, fire), _guide_ring(), default_policy.mutations
    )

    assert list(request.co_fields) == ["name", "tier", "equipped_by"]
    assert request.values["element"] == fire


def test_pending_corrections_replace_stale_co_fields(default_policy: PolicyTable) -> None:
    corrections = {"tier": 4, "attack": 12}

    request = build_write_back(
        _auto("attack", 10, 12),
        _guide_ring(),
        default_policy.mutations,
        corrections=corrections,
    )

    assert dict(request.co_fields) == {"name": "Ring of Vitality", "tier": 4}


def test_slot_correction_carries_the_corrected_flag(default_policy: PolicyTable) -> None:
    guide = _guide_ring().with_fields({"base_adornment_slots": 1, "has_slots": True})

    request = build_write_back(
        _auto("base_adornment_slots", 1, 0),
        guide,
        default_policy.mutations,
        corrections={"base_adornment_slots": 0, "has_slots": False},
    )

    assert list(request.co_fields) == ["name", "tier", "has_slots"]
    assert request.co_fields["has_slots"] is False
    assert "rarity" not in request.co_fields


def test_missing_co_field_is_a_schema_error(default_policy: PolicyTable) -> None:
    guide = record(EntityKind.ITEM, RING, source_id="17", name="Ring of Vitality", attack=10)

    with pytest.raises(SchemaError) as exc:
        build_write_back(_auto("attack", 10, 12), guide, default_policy.mutations)

    assert exc.value.field == "tier"


def test_kind_without_mutation_schema(default_policy: PolicyTable) -> None:
    discrepancy = Discrepancy(
        EntityKind.STATUS,
        "status/regen",
        "name",
        "Regen",
        "Regeneration",
        disposition=Disposition.AUTO,
    )
    guide = record(EntityKind.STATUS, "status/regen", source_id="7", name="Regen")

    with pytest.raises(SchemaError, match="no mutation schema"):
        build_write_back(discrepancy, guide, default_policy.mutations)


def test_guide_record_without_id(default_policy: PolicyTable) -> None:
    guide = record(EntityKind.ITEM, RING, name="Ring of Vitality", tier=3, attack=10)

    with pytest.raises(SchemaError, match="no guide id"):
        build_write_back(_auto("attack", 10, 12), guide, default_policy.mutations)


def test_only_auto_discrepancies_become_write_backs(default_policy: PolicyTable) -> None:
    review = classify(
        Discrepancy(EntityKind.ITEM, RING, "rarity", "common", "famed"), default_policy
    )

    with pytest.raises(ValueError, match="not auto"):
        build_write_back(review, _guide_ring(), default_policy.mutations)


def test_guide_record_must_match(default_policy: PolicyTable) -> None:
    other = record(EntityKind.ITEM, "items/lesser-ring", source_id="18", name="x", tier=1)

    with pytest.raises(ValueError, match="does not match"):
        build_write_back(_auto("attack", 10, 12), other, default_policy.mutations)
