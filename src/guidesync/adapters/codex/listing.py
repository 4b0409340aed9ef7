"""Paginated codex section lists."""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup

from guidesync.domain.model import ParseError, codex_identifier


@dataclass(frozen=True, slots=True)
class CodexList:
    identifiers: list[str]
    has_next_page: bool


def parse_codex_list(html: str, *, locator: str | None = None) -> CodexList:
    soup = BeautifulSoup(html, "html.parser")
    container = soup.select_one(".codex-entries")
    if container is None:
        raise ParseError("entries", ".codex-entries", locator=locator)

    identifiers = [
        codex_identifier(str(anchor["href"]))
        for anchor in container.select(".codex-entries-entry a[href]")
    ]
    pagination = soup.select_one(".pagination")
    has_next = pagination is not None and "Next page" in pagination.get_text(" ", strip=True)
    return CodexList(identifiers=identifiers, has_next_page=has_next)
