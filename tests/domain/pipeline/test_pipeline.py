from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from guidesync.adapters.codex import CODEX_PARSERS
from guidesync.adapters.guide import GUIDE_PARSERS
from guidesync.adapters.guide.admin import encode_value, replace_pairs
from guidesync.adapters.guide.forms import find_form, form_pairs
from guidesync.config import RetryPolicy
from guidesync.domain.model import (
    ENTITY_KINDS,
    METADATA_KINDS,
    Disposition,
    EntityKind,
    FetchError,
    FetchRequest,
)
from guidesync.domain.pipeline import (
    PipelineContext,
    PipelineStage,
    ReconciliationPipeline,
)
from guidesync.domain.reconciliation import PolicyTable
from tests.support import codex_pages
from tests.support.admin_site import apply_submission
from tests.support.fakes import (
    FakeCodexCatalog,
    FakeGuideCatalog,
    RecordingExecutor,
    default_codex_pages,
    default_guide_forms,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from guidesync.domain.model import WriteBackRequest
    from guidesync.domain.pipeline import ReconciliationReport, RunState
    from guidesync.domain.ports import WriteBackExecutor
    from guidesync.domain.reconciliation import ReferenceIndex

ALL_KINDS = (*ENTITY_KINDS, *sorted(METADATA_KINDS))
RING = "items/ring-of-vitality"


@dataclass
class SleepRecorder:
    waits: list[float]

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


def _context(
    policy: PolicyTable,
    *,
    guide: FakeGuideCatalog | None = None,
    codex: FakeCodexCatalog | None = None,
    executor: WriteBackExecutor | None = None,
    apply_write_backs: bool = False,
    sleep: SleepRecorder | None = None,
) -> PipelineContext:
    return PipelineContext(
        guide=guide or FakeGuideCatalog(default_guide_forms()),
        codex=codex or FakeCodexCatalog(default_codex_pages()),
        guide_parsers=GUIDE_PARSERS,
        codex_parsers=CODEX_PARSERS,
        policy=policy,
        executor=executor,
        apply_write_backs=apply_write_backs,
        retry=RetryPolicy(total=2, backoff_factor=0.5, backoff_jitter=0.0),
        sleep=sleep or SleepRecorder([]),
    )


def _run(
    context: PipelineContext,
    kinds: Iterable[EntityKind] = ALL_KINDS,
    pipeline: ReconciliationPipeline | None = None,
) -> RunState:
    return asyncio.run((pipeline or ReconciliationPipeline()).run(kinds, context=context))


def _report(state: RunState) -> ReconciliationReport:
    assert state.report is not None
    return state.report


def test_dry_run_reports_without_writing(default_policy: PolicyTable) -> None:
    executor = RecordingExecutor()

    report = _report(_run(_context(default_policy, executor=executor)))

    item = report.for_kind(EntityKind.ITEM)
    assert [(d.identifier, d.field, d.guide_value, d.codex_value) for d in item.auto] == [
        (RING, "attack", 10, 12)
    ]
    assert item.auto[0].disposition is Disposition.AUTO
    assert item.needs_review == ()
    assert item.applied == ()
    assert executor.applied == []

    assert report.for_kind(EntityKind.MONSTER).reconciled == ("monsters/slime",)
    assert report.for_kind(EntityKind.SKILL).reconciled == ("spells/fireball", "spells/heal")
    assert report.for_kind(EntityKind.PET).reconciled == ("followers/wolf-pup",)
    assert report.failed_kinds == ()
    assert report.fatal_error is None


def test_metadata_kinds_reconcile_against_codex_references(default_policy: PolicyTable) -> None:
    report = _report(_run(_context(default_policy)))

    status = report.for_kind(EntityKind.STATUS)
    assert status.reconciled == ("status/burning", "status/regen")
    # "Poisoned" is never referenced by a fetched page.
    assert status.guide_orphans == ()
    assert report.for_kind(EntityKind.FAMILY).reconciled == ("family/slime",)
    assert report.for_kind(EntityKind.ELEMENT).reconciled == ()
    assert report.for_kind(EntityKind.SPAWN).codex_orphans == ()


def test_fix_mode_applies_auto_corrections(default_policy: PolicyTable) -> None:
    executor = RecordingExecutor()

    report = _report(
        _run(_context(default_policy, executor=executor, apply_write_backs=True))
    )

    assert len(executor.applied) == 1
    request = executor.applied[0]
    assert (request.identifier, request.source_id, request.field, request.value) == (
        RING,
        "17",
        "attack",
        12,
    )
    assert dict(request.co_fields) == {"name": "Ring of Vitality", "tier": 3}
    assert report.for_kind(EntityKind.ITEM).applied == (request,)
    assert report.summary()["applied"] == 1


def test_needs_review_discrepancies_are_never_applied(default_policy: PolicyTable) -> None:
    pages = default_codex_pages()
    pages[EntityKind.ITEM][RING] = codex_pages.ring_of_vitality_page(
        attack="10", meta=["Tier: ★3", "Rarity: Famed", "Useable by: All"]
    )
    executor = RecordingExecutor()

    report = _report(
        _run(
            _context(
                default_policy,
                codex=FakeCodexCatalog(pages),
                executor=executor,
                apply_write_backs=True,
            )
        )
    )

    item = report.for_kind(EntityKind.ITEM)
    assert [(d.field, d.guide_value, d.codex_value) for d in item.needs_review] == [
        ("rarity", "common", "famed")
    ]
    assert executor.applied == []


def test_failed_write_back_is_recorded(default_policy: PolicyTable) -> None:
    failure = FetchError(
        FetchRequest("POST", "https://guide.test/admin/items/item/17/change/"),
        "HTTP 500",
        status_code=500,
    )
    executor = RecordingExecutor(fail_for={RING: failure})

    report = _report(
        _run(_context(default_policy, executor=executor, apply_write_backs=True))
    )

    item = report.for_kind(EntityKind.ITEM)
    assert item.applied == ()
    assert [(f.identifier, f.field, f.error) for f in item.write_back_failures] == [
        (RING, "attack", failure)
    ]


def test_missing_mutation_schema_is_a_write_back_failure() -> None:
    policy = PolicyTable.from_mapping(
        {"fields": {"item": {"attack": {"disposition": "auto"}}}}
    )
    executor = RecordingExecutor()

    report = _report(
        _run(
            _context(policy, executor=executor, apply_write_backs=True),
            kinds=[EntityKind.ITEM],
        )
    )

    item = report.for_kind(EntityKind.ITEM)
    assert executor.applied == []
    assert [f.field for f in item.write_back_failures] == ["attack"]
    assert item.failed_stage is None


def test_one_failing_kind_does_not_stop_the_others(default_policy: PolicyTable) -> None:
    error = FetchError(
        FetchRequest.get("https://guide.test/admin/monsters/monster/"),
        "HTTP 403",
        status_code=403,
    )
    guide = FakeGuideCatalog(default_guide_forms(), list_errors={EntityKind.MONSTER: error})

    report = _report(_run(_context(default_policy, guide=guide)))

    monster = report.for_kind(EntityKind.MONSTER)
    assert monster.failed_stage == PipelineStage.FETCHING
    assert monster.error is not None and "HTTP 403" in monster.error
    assert report.failed_kinds == (EntityKind.MONSTER,)
    assert len(report.for_kind(EntityKind.ITEM).auto) == 1
    assert report.for_kind(EntityKind.PET).reconciled == ("followers/wolf-pup",)


def test_retryable_fetch_errors_are_retried(default_policy: PolicyTable) -> None:
    codex = FakeCodexCatalog(default_codex_pages(), failures={"spells/heal": 503})
    sleep = SleepRecorder([])

    report = _report(_run(_context(default_policy, codex=codex, sleep=sleep)))

    assert codex.attempts["spells/heal"] == 3
    assert sleep.waits == [0.5, 1.0]
    skill = report.for_kind(EntityKind.SKILL)
    assert [f.locator for f in skill.fetch_failures] == ["codex spells/heal"]
    assert skill.guide_orphans == ("spells/heal",)
    assert skill.reconciled == ("spells/fireball",)
    assert skill.failed_stage is None


def test_non_retryable_fetch_errors_fail_once(default_policy: PolicyTable) -> None:
    codex = FakeCodexCatalog(default_codex_pages(), failures={"followers/wolf-pup": 404})
    sleep = SleepRecorder([])

    report = _report(_run(_context(default_policy, codex=codex, sleep=sleep)))

    assert codex.attempts["followers/wolf-pup"] == 1
    assert sleep.waits == []
    assert report.for_kind(EntityKind.PET).guide_orphans == ("followers/wolf-pup",)


def test_parse_failures_are_attributed(default_policy: PolicyTable) -> None:
    pages = default_codex_pages()
    pages[EntityKind.ITEM][RING] = codex_pages.ring_of_vitality_page(stats=["Wisdom: 5"])

    report = _report(_run(_context(default_policy, codex=FakeCodexCatalog(pages))))

    item = report.for_kind(EntityKind.ITEM)
    assert [(f.locator, f.field) for f in item.parse_failures] == [
        (f"{codex_pages.CODEX_URL}/codex/{RING}/", "stats")
    ]
    assert item.guide_orphans == (RING,)
    assert item.failed_stage is None


def test_codex_only_entries_are_orphans(default_policy: PolicyTable) -> None:
    pages = default_codex_pages()
    pages[EntityKind.PET]["followers/fox"] = codex_pages.codex_page(
        name="Fox", icon="followers/fox.png", meta=["Tier: ★1"], descriptions=["Sly."]
    )

    report = _report(_run(_context(default_policy, codex=FakeCodexCatalog(pages))))

    assert report.for_kind(EntityKind.PET).codex_orphans == ("followers/fox",)


@dataclass
class ExplodingPhase:
    name: PipelineStage = PipelineStage.APPLYING_WRITE_BACKS

    async def run(self, state: RunState, *, context: PipelineContext) -> None:
        raise RuntimeError("boom")


def test_fatal_phase_error_still_produces_a_report(default_policy: PolicyTable) -> None:
    pipeline = ReconciliationPipeline().with_phase(ExplodingPhase())

    state = _run(_context(default_policy), pipeline=pipeline)

    report = _report(state)
    assert isinstance(state.fatal_error, RuntimeError)
    assert report.fatal_error == "RuntimeError('boom')"
    assert len(report.for_kind(EntityKind.ITEM).auto) == 1


def test_only_selected_kinds_are_fetched(default_policy: PolicyTable) -> None:
    guide = FakeGuideCatalog(default_guide_forms())

    report = _report(_run(_context(default_policy, guide=guide), kinds=[EntityKind.PET]))

    assert [kind_report.kind for kind_report in report.kinds] == [EntityKind.PET]
    assert {kind for kind, _ in guide.loaded} == {EntityKind.PET}
    # Skill references stay unresolved without the skill forms.
    assert report.for_kind(EntityKind.PET).needs_review[0].field == "skills"


def _ring_with(*, tier: str = "3", **overrides: object) -> str:
    overrides.setdefault("meta", [f"Tier: ★{tier}", "Rarity: Common", "Useable by: All"])
    return codex_pages.ring_of_vitality_page(**overrides)


def test_co_fields_carry_corrections_made_earlier_in_the_run(
    default_policy: PolicyTable,
) -> None:
    pages = default_codex_pages()
    pages[EntityKind.ITEM][RING] = _ring_with(tier="4")
    executor = RecordingExecutor()

    _run(
        _context(
            default_policy,
            codex=FakeCodexCatalog(pages),
            executor=executor,
            apply_write_backs=True,
        )
    )

    assert [(r.field, r.value) for r in executor.applied] == [("tier", 4), ("attack", 12)]
    assert dict(executor.applied[0].co_fields) == {"name": "Ring of Vitality"}
    assert dict(executor.applied[1].co_fields) == {"name": "Ring of Vitality", "tier": 4}


@dataclass
class AdminFormExecutor:
    """Saves each request into the fake guide's stored change form."""

    guide: FakeGuideCatalog
    applied: list[WriteBackRequest] = field(default_factory=list)

    async def apply(self, request: WriteBackRequest, index: ReferenceIndex) -> None:
        form_id = f"{request.kind}_form"
        html = self.guide.forms[request.kind][request.source_id]
        form = find_form(html, form_id)
        replacements = {
            name: encode_value(form, request, name, value, index)
            for name, value in request.values.items()
        }
        pairs = replace_pairs(form_pairs(form), replacements)
        self.guide.forms[request.kind][request.source_id] = apply_submission(
            html, form_id, pairs
        )
        self.applied.append(request)


def test_applied_corrections_leave_nothing_to_correct(default_policy: PolicyTable) -> None:
    pages = default_codex_pages()
    pages[EntityKind.ITEM][RING] = _ring_with(tier="4", stats=["Attack: 12", "HP: 25"])
    pages[EntityKind.SKILL]["spells/fireball"] = codex_pages.codex_page(
        name="Fireball",
        icon="skills/fireball.png",
        meta=["Tier: ★2"],
        descriptions=["Hurls a great ball of fire."],
        sections={"Causes:": [("Burning (20%)", None)]},
        tags=["Found in Arcanists"],
    )
    guide = FakeGuideCatalog(default_guide_forms())
    codex = FakeCodexCatalog(pages)
    executor = AdminFormExecutor(guide)

    context = _context(
        default_policy, guide=guide, codex=codex, executor=executor, apply_write_backs=True
    )
    first = _report(_run(context))
    second = _report(_run(_context(default_policy, guide=guide, codex=codex)))

    assert {d.field for d in first.for_kind(EntityKind.ITEM).auto} == {
        "tier",
        "attack",
        "base_adornment_slots",
        "has_slots",
    }
    assert {d.field for d in first.for_kind(EntityKind.SKILL).auto} == {
        "description",
        "bought",
    }
    assert len(executor.applied) == 6
    for kind in (EntityKind.ITEM, EntityKind.SKILL):
        assert second.for_kind(kind).auto == ()
        assert second.for_kind(kind).needs_review == ()
    assert RING in second.for_kind(EntityKind.ITEM).reconciled
    assert "spells/fireball" in second.for_kind(EntityKind.SKILL).reconciled


@dataclass
class OverlapRecorder:
    """Tracks how many requests are in flight, per entity and overall."""

    active: Counter[str] = field(default_factory=Counter)
    peak: Counter[str] = field(default_factory=Counter)
    in_flight: int = 0
    peak_in_flight: int = 0
    applied: list[WriteBackRequest] = field(default_factory=list)

    async def apply(self, request: WriteBackRequest, index: ReferenceIndex) -> None:
        del index
        key = request.identifier
        self.active[key] += 1
        self.in_flight += 1
        self.peak[key] = max(self.peak[key], self.active[key])
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.active[key] -= 1
        self.in_flight -= 1
        self.applied.append(request)


def test_write_backs_for_one_entity_never_overlap(default_policy: PolicyTable) -> None:
    pages = default_codex_pages()
    pages[EntityKind.SKILL] = {
        "spells/fireball": codex_pages.codex_page(
            name="Fireball",
            icon="skills/fireball.png",
            meta=["Tier: ★3"],
            descriptions=["Hurls a great ball of fire."],
            sections={"Causes:": [("Burning (20%)", None)]},
        ),
        "spells/heal": codex_pages.codex_page(
            name="Heal",
            icon="skills/heal.png",
            meta=["Tier: ★2"],
            descriptions=["Restores much health."],
        ),
    }
    executor = OverlapRecorder()

    _run(
        _context(
            default_policy,
            codex=FakeCodexCatalog(pages),
            executor=executor,
            apply_write_backs=True,
        ),
        kinds=[EntityKind.SKILL],
    )

    assert len(executor.applied) == 4
    assert executor.peak == Counter({"spells/fireball": 1, "spells/heal": 1})
    assert executor.peak_in_flight == 2


def test_dropped_by_is_derived_from_guide_monster_drops(default_policy: PolicyTable) -> None:
    pages = default_codex_pages()
    pages[EntityKind.ITEM][RING] = codex_pages.ring_of_vitality_page(
        sections={
            "Gives:": [("Regen (10%)", None)],
            "Dropped by:": [
                ("Slime", "/codex/monsters/slime/"),
                ("Bat", "/codex/monsters/bat/"),
            ],
        }
    )

    report = _report(_run(_context(default_policy, codex=FakeCodexCatalog(pages))))

    (review,) = report.for_kind(EntityKind.ITEM).needs_review
    assert review.field == "dropped_by"
    assert {ref.key for ref in review.guide_value} == {"monsters/slime"}  # type: ignore[union-attr]
    assert {ref.key for ref in review.codex_value} == {  # type: ignore[union-attr]
        "monsters/slime",
        "monsters/bat",
    }


def test_dropped_by_is_skipped_without_monster_forms(default_policy: PolicyTable) -> None:
    pages = default_codex_pages()
    pages[EntityKind.ITEM][RING] = codex_pages.ring_of_vitality_page(
        sections={"Dropped by:": [("Bat", "/codex/monsters/bat/")], "Gives:": [("Regen", None)]}
    )

    report = _report(
        _run(_context(default_policy, codex=FakeCodexCatalog(pages)), kinds=[EntityKind.ITEM])
    )

    assert report.for_kind(EntityKind.ITEM).needs_review == ()
