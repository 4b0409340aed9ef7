"""Normalized entity model shared by both document dialects."""

from __future__ import annotations

from .documents import FetchRequest, RemoteDocument
from .entity import (
    EntityBuilder,
    EntityRef,
    FieldValue,
    NormalizedEntity,
    codex_identifier,
    guide_placeholder,
)
from .enums import ENTITY_KINDS, METADATA_KINDS, Disposition, EntityKind, FieldType, Origin
from .errors import (
    FetchError,
    GuidesyncError,
    MatchError,
    ParseError,
    SchemaError,
    WriteBackError,
)
from .records import Discrepancy, EntityPair, WriteBackRequest
from .schema import ENTITY_SCHEMAS, RAID_TAGS, EntitySchema, FieldSpec, schema_for

__all__ = [
    "ENTITY_KINDS",
    "ENTITY_SCHEMAS",
    "METADATA_KINDS",
    "RAID_TAGS",
    "Discrepancy",
    "Disposition",
    "EntityBuilder",
    "EntityKind",
    "EntityPair",
    "EntityRef",
    "EntitySchema",
    "FetchError",
    "FetchRequest",
    "FieldSpec",
    "FieldType",
    "FieldValue",
    "GuidesyncError",
    "MatchError",
    "NormalizedEntity",
    "Origin",
    "ParseError",
    "RemoteDocument",
    "SchemaError",
    "WriteBackError",
    "WriteBackRequest",
    "codex_identifier",
    "guide_placeholder",
    "schema_for",
]
