"""Discover and load guide admin pages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from guidesync.domain.model import EntityKind, FetchRequest

from .listing import parse_guide_list, parse_guide_metadata

if TYPE_CHECKING:
    from guidesync.domain.model import NormalizedEntity, RemoteDocument
    from guidesync.domain.ports import CatalogEntry, DocumentFetcher

log = logging.getLogger(__name__)

ADMIN_PATHS: dict[EntityKind, str] = {
    EntityKind.ITEM: "/admin/items/item/",
    EntityKind.MONSTER: "/admin/monsters/monster/",
    EntityKind.SKILL: "/admin/skills/skill/",
    EntityKind.PET: "/admin/pets/pet/",
    EntityKind.STATUS: "/admin/orna/statuseffect/",
    EntityKind.SPAWN: "/admin/orna/spawn/",
    EntityKind.FAMILY: "/admin/monsters/family/",
    EntityKind.ELEMENT: "/admin/orna/element/",
}


class GuideCatalogClient:
    """``GuideCatalog`` over the Django admin of the guide."""

    def __init__(self, fetcher: DocumentFetcher, base_url: str) -> None:
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")

    def list_url(self, kind: EntityKind, page: int = 0) -> str:
        url = f"{self._base_url}{_admin_path(kind)}"
        return url if page == 0 else f"{url}?p={page}"

    def change_form_url(self, kind: EntityKind, local_id: str) -> str:
        return f"{self._base_url}{_admin_path(kind)}{local_id}/change/"

    @property
    def origin(self) -> str:
        scheme, _, rest = self._base_url.partition("://")
        return f"{scheme}://{rest.partition('/')[0]}"

    async def list_entries(self, kind: EntityKind) -> list[CatalogEntry]:
        """Walk the change list; pages are numbered from 0 and the first has no ``p``."""

        entries: list[CatalogEntry] = []
        page = 0
        while True:
            url = self.list_url(kind, page)
            document = await self._fetcher.fetch(FetchRequest.get(url))
            listing = parse_guide_list(document.text, locator=url)
            entries.extend(listing.entries)
            if not listing.entries or len(entries) >= listing.total:
                break
            page += 1
        log.info("Guide lists %d %s entries", len(entries), kind)
        return entries

    async def load_form(self, kind: EntityKind, local_id: str) -> RemoteDocument:
        return await self._fetcher.fetch(FetchRequest.get(self.change_form_url(kind, local_id)))

    async def list_metadata(self, kind: EntityKind) -> list[NormalizedEntity]:
        return parse_guide_metadata(kind, await self.list_entries(kind))


def _admin_path(kind: EntityKind) -> str:
    try:
        return ADMIN_PATHS[kind]
    except KeyError:
        raise ValueError(f"the guide admin has no change list for {kind}") from None
