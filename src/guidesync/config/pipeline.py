"""Reconciliation run defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .env import optional_int_env_var
from .http_resilience import RetryPolicy

DEFAULT_MAX_CONCURRENCY = 8


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    apply_write_backs: bool = False
    kinds: tuple[str, ...] | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    policy_path: Path | None = None


def get_pipeline_config(
    *,
    apply_write_backs: bool = False,
    kinds: tuple[str, ...] | None = None,
) -> PipelineConfig:
    policy_path = os.getenv("GUIDESYNC_POLICY_PATH")
    return PipelineConfig(
        max_concurrency=optional_int_env_var(
            "GUIDESYNC_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY
        ),
        apply_write_backs=apply_write_backs,
        kinds=kinds,
        policy_path=Path(policy_path).expanduser() if policy_path else None,
    )
