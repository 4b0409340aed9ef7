"""Django admin change lists."""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

from guidesync.domain.model import EntityKind, NormalizedEntity, Origin, ParseError
from guidesync.domain.ports.catalog import CatalogEntry
from guidesync.domain.reconciliation.normalize import metadata_identifier

_CHANGE_HREF = re.compile(r"/(?P<id>\d+)/change/$")


@dataclass(frozen=True, slots=True)
class GuideList:
    entries: list[CatalogEntry]
    total: int


def parse_guide_list(html: str, *, locator: str | None = None) -> GuideList:
    """Read the ``#result_list`` rows and the total from ``.paginator``."""

    soup = BeautifulSoup(html, "html.parser")
    table = soup.find(id="result_list")
    if not isinstance(table, Tag):
        raise ParseError("result_list", "#result_list", locator=locator)
    paginator = soup.select_one(".paginator")
    if paginator is None:
        raise ParseError("paginator", ".paginator", locator=locator)

    entries: list[CatalogEntry] = []
    for row in table.select("tbody tr"):
        anchor = row.select_one("a[href]")
        if anchor is None:
            raise ParseError("href", row.get_text(" ", strip=True), locator=locator)
        href = str(anchor["href"]).split("?", 1)[0]
        match = _CHANGE_HREF.search(href)
        if match is None:
            raise ParseError("href", href, locator=locator)
        entries.append(CatalogEntry(match.group("id"), anchor.get_text(" ", strip=True)))
    return GuideList(entries=entries, total=_paginator_total(paginator.get_text(" "), locator))


def parse_guide_metadata(kind: EntityKind, entries: list[CatalogEntry]) -> list[NormalizedEntity]:
    """Metadata records straight from change-list rows: the row label is the name."""

    return [
        NormalizedEntity(
            kind=kind,
            identifier=metadata_identifier(kind, entry.label),
            origin=Origin.GUIDE,
            fields={"name": entry.label},
            source_id=entry.local_id,
        )
        for entry in entries
    ]


def _paginator_total(text: str, locator: str | None) -> int:
    # "1 2 3 ... 42 1234 items": the count is the last number before the noun.
    total: int | None = None
    for token in text.split():
        if token in {"...", "…"}:
            continue
        if not token.isdigit():
            break
        total = int(token, 10)
    if total is None:
        raise ParseError("paginator", text.strip(), locator=locator)
    return total
