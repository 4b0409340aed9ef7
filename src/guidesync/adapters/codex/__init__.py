"""Codex dialect: public codex pages and section lists."""

from __future__ import annotations

from .catalog import CODEX_SECTIONS, CodexCatalogClient
from .listing import CodexList, parse_codex_list
from .page import CodexPage, read_codex_page
from .parsers import (
    CODEX_PARSERS,
    CodexItemParser,
    CodexMonsterParser,
    CodexPageParser,
    CodexPetParser,
    CodexSkillParser,
)

__all__ = [
    "CODEX_PARSERS",
    "CODEX_SECTIONS",
    "CodexCatalogClient",
    "CodexItemParser",
    "CodexList",
    "CodexMonsterParser",
    "CodexPage",
    "CodexPageParser",
    "CodexPetParser",
    "CodexSkillParser",
    "parse_codex_list",
    "read_codex_page",
]
