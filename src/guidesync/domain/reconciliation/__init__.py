"""Diffing, classification and write-back building.

Everything here is pure: the only mutation happens in the write-back
executor, an adapter.
"""

from __future__ import annotations

from .classify import classify, classify_all
from .diff import diff, values_equal
from .matching import (
    MatchResult,
    ReferenceIndex,
    attach_dropped_by,
    derive_codex_metadata,
    match,
    resolve_references,
)
from .normalize import metadata_identifier, metadata_ref, normalize_text, slugify
from .policy import MutationSchema, PolicyRow, PolicyRule, PolicyTable
from .write_back import build_write_back

__all__ = [
    "MatchResult",
    "MutationSchema",
    "PolicyRow",
    "PolicyRule",
    "PolicyTable",
    "ReferenceIndex",
    "attach_dropped_by",
    "build_write_back",
    "classify",
    "classify_all",
    "derive_codex_metadata",
    "diff",
    "match",
    "metadata_identifier",
    "metadata_ref",
    "normalize_text",
    "resolve_references",
    "slugify",
    "values_equal",
]
