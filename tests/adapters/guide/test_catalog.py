from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx

from guidesync.adapters.fetcher import CachedFetcher
from guidesync.adapters.guide import GuideCatalogClient
from guidesync.adapters.http_resilience import ResilientClient
from guidesync.config import ResilienceConfig
from guidesync.domain.model import EntityKind
from guidesync.domain.ports import CatalogEntry
from tests.support import guide_pages

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

ITEM_LIST = "/admin/items/item/"


def _pages(request: httpx.Request) -> httpx.Response:
    page = request.url.params.get("p")
    if request.url.path == ITEM_LIST:
        rows = {
            None: [("17", "Ring of Vitality"), ("18", "Lesser Ring")],
            "1": [("19", "Greater Ring")],
        }[page]
        return httpx.Response(200, text=guide_pages.change_list(ITEM_LIST, rows, total=3))
    if request.url.path == "/admin/orna/statuseffect/":
        return httpx.Response(
            200,
            text=guide_pages.change_list(
                "/admin/orna/statuseffect/", guide_pages.STATUS_OPTIONS, noun="status effects"
            ),
        )
    if request.url.path == "/admin/items/item/17/change/":
        return httpx.Response(200, text=guide_pages.item_form())
    return httpx.Response(404)


def _run[T](action: Callable[[GuideCatalogClient], Awaitable[T]]) -> T:
    async def run() -> T:
        async with ResilientClient(
            ResilienceConfig(name="guide"), transport=httpx.MockTransport(_pages)
        ) as client:
            catalog = GuideCatalogClient(CachedFetcher(client), guide_pages.GUIDE_URL + "/")
            return await action(catalog)

    return asyncio.run(run())


def test_list_entries_walks_pages_until_total() -> None:
    async def action(catalog: GuideCatalogClient) -> list[CatalogEntry]:
        return await catalog.list_entries(EntityKind.ITEM)

    entries: list[CatalogEntry] = _run(action)

    assert [entry.local_id for entry in entries] == ["17", "18", "19"]


def test_list_metadata_uses_row_labels() -> None:
    async def action(catalog: GuideCatalogClient) -> list[str]:
        records = await catalog.list_metadata(EntityKind.STATUS)
        return [record.identifier for record in records]

    identifiers: list[str] = _run(action)

    assert identifiers == ["status/burning", "status/poisoned", "status/regen"]


def test_load_form_and_urls() -> None:
    async def action(catalog: GuideCatalogClient) -> tuple[str, str]:
        document = await catalog.load_form(EntityKind.ITEM, "17")
        return document.url, catalog.origin

    url, origin = _run(action)

    assert url == "https://guide.test/admin/items/item/17/change/"
    assert origin == "https://guide.test"
