"""Declarative classification and mutation policy.

The policy file is TOML with three sections::

    [fields.item]
    attack = { disposition = "auto", reason = "codex stats are authoritative" }

    [orphans]
    guide = ["items/orna"]

    [mutation.item]
    always = ["name", "tier"]
    requires = { element = ["equipped_by"] }

Fields that are not listed classify as ``needs_review``. Listing a field the
kind does not declare raises ``PolicyError`` at load time.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from guidesync.config.errors import PolicyError
from guidesync.domain.model import ENTITY_SCHEMAS, Disposition, EntityKind, Origin

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

NO_POLICY_REASON = "no policy entry"


class _RuleModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    disposition: Disposition
    reason: str = ""


class _OrphansModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    guide: list[str] = Field(default_factory=list)
    codex: list[str] = Field(default_factory=list)


class _MutationModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    always: list[str] = Field(default_factory=list)
    requires: dict[str, list[str]] = Field(default_factory=dict)


class _PolicyModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    fields: dict[EntityKind, dict[str, _RuleModel]] = Field(default_factory=dict)
    orphans: _OrphansModel = Field(default_factory=_OrphansModel)
    mutation: dict[EntityKind, _MutationModel] = Field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PolicyRule:
    disposition: Disposition
    reason: str


@dataclass(frozen=True, slots=True)
class PolicyRow:
    kind: EntityKind
    field: str
    disposition: Disposition
    reason: str


@dataclass(frozen=True, slots=True)
class MutationSchema:
    """Fields the guide form validates together with a corrected field."""

    kind: EntityKind
    always: tuple[str, ...] = ()
    requires: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def co_fields(self, target: str) -> tuple[str, ...]:
        """Co-dependent fields for ``target``, in declaration order, target excluded."""

        ordered: dict[str, None] = {}
        for name in (*self.always, *self.requires.get(target, ())):
            if name != target:
                ordered[name] = None
        return tuple(ordered)


_UNLISTED = PolicyRule(Disposition.NEEDS_REVIEW, NO_POLICY_REASON)


@dataclass(frozen=True, slots=True)
class PolicyTable:
    rules: Mapping[tuple[EntityKind, str], PolicyRule] = field(default_factory=dict)
    accepted_orphans: Mapping[Origin, frozenset[str]] = field(default_factory=dict)
    mutations: Mapping[EntityKind, MutationSchema] = field(default_factory=dict)
    source: Path | None = None

    @classmethod
    def load(cls, path: Path | None = None) -> PolicyTable:
        """Read and validate the policy file; ``None`` loads the shipped default."""

        if path is None:
            resource = resources.files("guidesync.config").joinpath("policy.toml")
            raw = resource.read_text(encoding="utf-8")
            source = Path(str(resource))
        else:
            try:
                raw = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise PolicyError(f"Cannot read policy file {path}: {exc}") from exc
            source = path
        try:
            data = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise PolicyError(f"Invalid TOML in policy file {source}: {exc}") from exc
        return cls.from_mapping(data, source=source)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: Path | None = None) -> PolicyTable:
        try:
            model = _PolicyModel.model_validate(data)
        except ValidationError as exc:
            raise PolicyError(f"Invalid policy table {source or ''}: {exc}") from exc

        rules: dict[tuple[EntityKind, str], PolicyRule] = {}
        for kind, entries in model.fields.items():
            schema = ENTITY_SCHEMAS[kind]
            for name, rule in entries.items():
                if name not in schema:
                    raise PolicyError(f"Policy lists unknown field {kind}.{name}")
                rules[(kind, name)] = PolicyRule(rule.disposition, rule.reason)

        mutations: dict[EntityKind, MutationSchema] = {}
        for kind, mutation in model.mutation.items():
            schema = ENTITY_SCHEMAS[kind]
            listed = set(mutation.always) | set(mutation.requires)
            for names in mutation.requires.values():
                listed.update(names)
            unknown = sorted(name for name in listed if name not in schema)
            if unknown:
                raise PolicyError(
                    f"Mutation schema for {kind} lists unknown fields: {', '.join(unknown)}"
                )
            mutations[kind] = MutationSchema(
                kind=kind,
                always=tuple(mutation.always),
                requires={key: tuple(value) for key, value in mutation.requires.items()},
            )

        return cls(
            rules=rules,
            accepted_orphans={
                Origin.GUIDE: frozenset(model.orphans.guide),
                Origin.CODEX: frozenset(model.orphans.codex),
            },
            mutations=mutations,
            source=source,
        )

    def rule(self, kind: EntityKind, field_name: str) -> PolicyRule:
        return self.rules.get((kind, field_name), _UNLISTED)

    def mutation_schema(self, kind: EntityKind) -> MutationSchema | None:
        return self.mutations.get(kind)

    def is_accepted_orphan(self, origin: Origin, identifier: str) -> bool:
        return identifier in self.accepted_orphans.get(origin, frozenset())

    def describe(self) -> Iterator[PolicyRow]:
        """Yield one row per declared field of every kind, unlisted fields included."""

        for kind, schema in ENTITY_SCHEMAS.items():
            for name in schema.field_names:
                rule = self.rule(kind, name)
                yield PolicyRow(kind, name, rule.disposition, rule.reason)
