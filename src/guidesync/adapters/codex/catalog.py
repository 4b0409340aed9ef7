"""Discover and load codex pages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from guidesync.domain.model import EntityKind, FetchRequest

from .listing import parse_codex_list

if TYPE_CHECKING:
    from guidesync.domain.model import RemoteDocument
    from guidesync.domain.ports import DocumentFetcher

log = logging.getLogger(__name__)

CODEX_SECTIONS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.ITEM: ("items",),
    EntityKind.MONSTER: ("monsters", "bosses", "raids"),
    EntityKind.SKILL: ("spells",),
    EntityKind.PET: ("followers",),
}


class CodexCatalogClient:
    """``CodexCatalog`` over the public codex site."""

    def __init__(self, fetcher: DocumentFetcher, base_url: str) -> None:
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")

    def section_url(self, section: str, page: int = 1) -> str:
        url = f"{self._base_url}/codex/{section}/"
        return url if page == 1 else f"{url}?p={page}"

    def page_url(self, identifier: str) -> str:
        return f"{self._base_url}/codex/{identifier}/"

    async def list_identifiers(self, kind: EntityKind) -> list[str]:
        sections = CODEX_SECTIONS.get(kind)
        if sections is None:
            raise ValueError(f"the codex has no section for {kind}")
        identifiers: list[str] = []
        for section in sections:
            identifiers.extend(await self._list_section(section))
        log.info("Codex lists %d %s entries", len(identifiers), kind)
        return identifiers

    async def load_page(self, identifier: str) -> RemoteDocument:
        return await self._fetcher.fetch(FetchRequest.get(self.page_url(identifier)))

    async def _list_section(self, section: str) -> list[str]:
        identifiers: list[str] = []
        page = 1
        while True:
            url = self.section_url(section, page)
            document = await self._fetcher.fetch(FetchRequest.get(url))
            listing = parse_codex_list(document.text, locator=url)
            identifiers.extend(listing.identifiers)
            if not listing.has_next_page or not listing.identifiers:
                return identifiers
            page += 1
