"""Assign dispositions from the policy table."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from guidesync.domain.model import Discrepancy

    from .policy import PolicyTable


def classify(discrepancy: Discrepancy, policy: PolicyTable) -> Discrepancy:
    """Return ``discrepancy`` with its disposition; values are never inspected."""

    rule = policy.rule(discrepancy.kind, discrepancy.field)
    return replace(discrepancy, disposition=rule.disposition, reason=rule.reason)


def classify_all(discrepancies: Iterable[Discrepancy], policy: PolicyTable) -> list[Discrepancy]:
    return [classify(discrepancy, policy) for discrepancy in discrepancies]
