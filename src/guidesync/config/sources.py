"""Guide and codex endpoint configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_var
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_GUIDE_BASE_URL = "https://orna.guide"
DEFAULT_CODEX_BASE_URL = "https://playorna.com"
SOURCE_TIMEOUT_SECONDS = 20.0
USER_AGENT = "guidesync (+https://orna.guide)"


@dataclass(frozen=True, slots=True)
class GuideConfig:
    """Admin access to the editable guide.

    ``session_cookie`` is an opaque credential obtained out-of-band; it is sent
    verbatim in the ``Cookie`` header and never inspected.
    """

    base_url: str
    session_cookie: str
    resilience: ResilienceConfig


@dataclass(frozen=True, slots=True)
class CodexConfig:
    base_url: str
    resilience: ResilienceConfig


def get_guide_config(*, resilience: ResilienceConfig | None = None) -> GuideConfig:
    base_url = optional_env_var("GUIDESYNC_GUIDE_URL", DEFAULT_GUIDE_BASE_URL).rstrip("/")
    cookie = require_env_var("GUIDESYNC_GUIDE_COOKIE")
    return GuideConfig(
        base_url=base_url,
        session_cookie=cookie,
        resilience=resilience
        or ResilienceConfig(
            name="guide",
            base_url=base_url,
            timeout_seconds=SOURCE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
            default_headers={"User-Agent": USER_AGENT, "Cookie": cookie},
        ),
    )


def get_codex_config(*, resilience: ResilienceConfig | None = None) -> CodexConfig:
    base_url = optional_env_var("GUIDESYNC_CODEX_URL", DEFAULT_CODEX_BASE_URL).rstrip("/")
    return CodexConfig(
        base_url=base_url,
        resilience=resilience
        or ResilienceConfig(
            name="codex",
            base_url=base_url,
            timeout_seconds=SOURCE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            default_headers={"User-Agent": USER_AGENT},
        ),
    )
