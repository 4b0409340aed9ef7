"""Build guide corrections from auto-correctable discrepancies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from guidesync.domain.model import Disposition, SchemaError, WriteBackRequest, schema_for

if TYPE_CHECKING:
    from collections.abc import Mapping

    from guidesync.domain.model import Discrepancy, EntityKind, FieldValue, NormalizedEntity

    from .policy import MutationSchema


def build_write_back(
    discrepancy: Discrepancy,
    guide: NormalizedEntity,
    schemas: Mapping[EntityKind, MutationSchema],
    *,
    corrections: Mapping[str, FieldValue] | None = None,
) -> WriteBackRequest:
    """Set the target field to the codex value and carry co-dependent fields.

    ``corrections`` holds every codex value about to be written for the same
    entity. A co-dependent field found there is submitted with its corrected
    value rather than the value the guide showed before the run, so one
    request never reverts another.

    Raises ``SchemaError`` when the kind has no mutation schema or the guide
    record lacks a co-dependent field.
    """

    if discrepancy.disposition is not Disposition.AUTO:
        raise ValueError(
            f"{discrepancy.kind}.{discrepancy.field} is {discrepancy.disposition}, not auto"
        )
    if guide.kind != discrepancy.kind or guide.identifier != discrepancy.identifier:
        raise ValueError(f"guide record {guide.identifier!r} does not match the discrepancy")

    mutation = schemas.get(discrepancy.kind)
    if mutation is None:
        raise SchemaError(
            discrepancy.kind,
            discrepancy.field,
            f"no mutation schema for {discrepancy.kind}",
        )
    if discrepancy.field not in schema_for(discrepancy.kind):
        raise SchemaError(
            discrepancy.kind,
            discrepancy.field,
            f"{discrepancy.kind} declares no field {discrepancy.field!r}",
        )
    if guide.source_id is None:
        raise SchemaError(
            discrepancy.kind,
            discrepancy.field,
            f"{guide.identifier} has no guide id to submit against",
        )

    corrections = corrections or {}
    co_fields: dict[str, FieldValue] = {}
    for name in mutation.co_fields(discrepancy.field):
        if name in corrections:
            co_fields[name] = corrections[name]
            continue
        if not guide.has(name):
            raise SchemaError(
                discrepancy.kind,
                name,
                f"{guide.identifier} lacks co-dependent field {name!r}",
            )
        co_fields[name] = guide.get(name)

    return WriteBackRequest(
        kind=discrepancy.kind,
        identifier=discrepancy.identifier,
        source_id=guide.source_id,
        field=discrepancy.field,
        value=discrepancy.codex_value,
        co_fields=co_fields,
    )
