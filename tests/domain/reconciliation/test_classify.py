from __future__ import annotations

from guidesync.domain.model import Discrepancy, Disposition, EntityKind
from guidesync.domain.reconciliation import PolicyTable, classify, classify_all
from guidesync.domain.reconciliation.policy import NO_POLICY_REASON


def _discrepancy(kind: EntityKind, field: str) -> Discrepancy:
    return Discrepancy(kind, "x", field, guide_value=1, codex_value=2)


def test_classify_uses_the_policy_rule(default_policy: PolicyTable) -> None:
    classified = classify(_discrepancy(EntityKind.ITEM, "attack"), default_policy)

    assert classified.disposition is Disposition.AUTO
    assert classified.reason == "codex stats are authoritative"
    assert (classified.guide_value, classified.codex_value) == (1, 2)


def test_classify_is_pure(default_policy: PolicyTable) -> None:
    original = _discrepancy(EntityKind.ITEM, "attack")

    first = classify(original, default_policy)
    second = classify(original, default_policy)

    assert first == second
    assert original.disposition is None


def test_values_do_not_influence_disposition(default_policy: PolicyTable) -> None:
    small = Discrepancy(EntityKind.ITEM, "x", "attack", guide_value=10, codex_value=11)
    large = Discrepancy(EntityKind.ITEM, "x", "attack", guide_value=10, codex_value=10_000)

    assert classify(small, default_policy).disposition is classify(
        large, default_policy
    ).disposition


def test_empty_policy_sends_everything_to_review() -> None:
    found = classify_all(
        [_discrepancy(EntityKind.ITEM, "attack"), _discrepancy(EntityKind.PET, "tier")],
        PolicyTable(),
    )

    assert [d.disposition for d in found] == [Disposition.NEEDS_REVIEW] * 2
    assert {d.reason for d in found} == {NO_POLICY_REASON}
