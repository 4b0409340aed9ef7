"""Field-by-field comparison of the two records of one entity."""

from __future__ import annotations

from typing import TYPE_CHECKING

from guidesync.domain.model import Discrepancy, EntityRef, FieldType, schema_for

from .normalize import normalize_text

if TYPE_CHECKING:
    from guidesync.domain.model import EntityPair, EntitySchema, FieldSpec, FieldValue


def values_equal(spec: FieldSpec, guide_value: FieldValue, codex_value: FieldValue) -> bool:
    """Compare two values with the equality rule of the field's type."""

    match spec.type:
        case FieldType.TEXT | FieldType.TAG:
            return normalize_text(_as_text(guide_value)) == normalize_text(
                _as_text(codex_value)
            )
        case FieldType.REFERENCE:
            return _ref_key(guide_value) == _ref_key(codex_value)
        case FieldType.TAG_SET | FieldType.REFERENCE_SET:
            return frozenset(_as_set(guide_value)) == frozenset(_as_set(codex_value))
        case _:
            return guide_value == codex_value


def diff(pair: EntityPair, schema: EntitySchema | None = None) -> list[Discrepancy]:
    """Return the discrepancies of ``pair`` in declared field order.

    Fields the codex does not expose are skipped, as are fields the guide
    record lacks. No disposition is assigned here.
    """

    guide, codex = pair.guide, pair.codex
    if guide.kind != codex.kind:
        raise ValueError(f"cannot diff a {guide.kind} against a {codex.kind}")
    if guide.identifier != codex.identifier:
        raise ValueError(f"cannot diff {guide.identifier!r} against {codex.identifier!r}")

    active_schema = schema or schema_for(guide.kind)
    discrepancies: list[Discrepancy] = []
    for spec in active_schema.fields:
        if not codex.has(spec.name) or not guide.has(spec.name):
            continue
        guide_value = guide.get(spec.name)
        codex_value = codex.get(spec.name)
        if values_equal(spec, guide_value, codex_value):
            continue
        discrepancies.append(
            Discrepancy(
                kind=guide.kind,
                identifier=guide.identifier,
                field=spec.name,
                guide_value=guide_value,
                codex_value=codex_value,
            )
        )
    return discrepancies


def _as_text(value: FieldValue) -> str | None:
    return value if isinstance(value, str) else None


def _as_set(value: FieldValue) -> frozenset[object]:
    if isinstance(value, frozenset):
        return value
    return frozenset()


def _ref_key(value: FieldValue) -> tuple[str, str] | None:
    if isinstance(value, EntityRef):
        return (value.kind, value.key)
    return None
