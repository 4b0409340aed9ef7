"""Submit corrections through the guide's Django admin."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import httpx
from bs4 import BeautifulSoup, Tag

from guidesync.domain.model import EntityRef, FetchRequest, WriteBackError
from guidesync.domain.reconciliation.normalize import normalize_text

from .forms import CSRF_FIELD, csrf_token, find_form, form_pairs, select_options
from .parsers import RARITY_CODES

if TYPE_CHECKING:
    from guidesync.domain.model import EntityKind, FieldValue, WriteBackRequest
    from guidesync.domain.reconciliation.matching import ReferenceIndex

    from ..fetcher import CachedFetcher
    from ..http_resilience import ResilientClient
    from .catalog import GuideCatalogClient

log = logging.getLogger(__name__)

RARITY_VALUES = {name: code for code, name in RARITY_CODES.items()}


class GuideAdminClient:
    """``WriteBackExecutor`` that resubmits the live change form.

    The form is re-fetched bypassing the cache so the csrf token and every
    other field are current; only the fields named by the request are
    replaced before the form is posted back.
    """

    def __init__(
        self,
        client: ResilientClient,
        fetcher: CachedFetcher,
        catalog: GuideCatalogClient,
    ) -> None:
        self._client = client
        self._fetcher = fetcher
        self._catalog = catalog

    async def apply(self, request: WriteBackRequest, index: ReferenceIndex) -> None:
        url = self._catalog.change_form_url(request.kind, request.source_id)
        form_id = f"{request.kind}_form"
        document = await self._fetcher.fetch(FetchRequest.get(url, use_cache=False))
        form = find_form(document.text, form_id, locator=url)

        missing = sorted(name for name in request.values if form.find(id=f"id_{name}") is None)
        if missing:
            raise WriteBackError(request, f"the change form has no {', '.join(missing)} field")
        replacements = {
            name: encode_value(form, request, name, value, index)
            for name, value in request.values.items()
        }
        pairs = [
            (CSRF_FIELD, csrf_token(form, locator=url)),
            *replace_pairs(form_pairs(form, locator=url), replacements),
            ("_save", "Save"),
        ]

        try:
            response = await self._client.post(
                url,
                content=urlencode(pairs),
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Referer": url,
                    "Origin": self._catalog.origin,
                },
                follow_redirects=False,
            )
        except httpx.HTTPError as exc:
            raise WriteBackError(request, f"submit failed: {exc}") from exc

        if response.status_code == 200:
            errors = parse_submit_errors(response.text, form_id)
            if errors is not None:
                raise WriteBackError(request, "guide rejected the change", field_errors=errors)
        elif not 300 <= response.status_code < 400:
            raise WriteBackError(request, f"HTTP {response.status_code}")

        self._fetcher.invalidate(FetchRequest.get(url))
        log.info(
            "Updated %s %s: %s = %r",
            request.kind,
            request.identifier,
            request.field,
            request.value,
        )


def parse_submit_errors(html: str, form_id: str) -> list[str] | None:
    """Errors shown on a re-rendered change form, or ``None`` when it was accepted."""

    soup = BeautifulSoup(html, "html.parser")
    form = soup.find(id=form_id)
    if not isinstance(form, Tag):
        return None
    errors = [
        item.get_text(" ", strip=True)
        for item in form.select("ul.errorlist li")
    ]
    note = soup.select_one(".errornote")
    if note is None and not errors:
        return None
    if note is not None:
        errors.insert(0, note.get_text(" ", strip=True))
    return list(dict.fromkeys(errors))


def replace_pairs(
    pairs: list[tuple[str, str]], replacements: dict[str, list[str]]
) -> list[tuple[str, str]]:
    """Swap the values of the replaced fields in place; other pairs are kept as they are."""

    result: list[tuple[str, str]] = []
    written: set[str] = set()
    for name, value in pairs:
        if name not in replacements:
            result.append((name, value))
            continue
        if name not in written:
            result.extend((name, new) for new in replacements[name])
            written.add(name)
    for name, values in replacements.items():
        if name not in written:
            result.extend((name, new) for new in values)
    return result


def encode_value(
    form: Tag,
    request: WriteBackRequest,
    name: str,
    value: FieldValue,
    index: ReferenceIndex,
) -> list[str]:
    """Form values that submit ``value`` for the field ``name``."""

    match value:
        case None:
            return [""]
        case bool():
            # An unchecked checkbox is not submitted at all.
            return ["on"] if value else []
        case int() | float():
            return [str(value)]
        case str() if name == "rarity":
            code = RARITY_VALUES.get(value)
            if code is None:
                raise WriteBackError(request, f"unknown rarity {value!r}")
            return [code]
        case str() if select_options(form, name):
            return [_option_for_label(form, request, name, value)]
        case str():
            return [value]
        case EntityRef():
            return [_option_for_ref(form, request, name, value, index)]
        case frozenset():
            return sorted(
                _option_for_ref(form, request, name, item, index)
                if isinstance(item, EntityRef)
                else _option_for_label(form, request, name, item)
                for item in value
            )
    raise WriteBackError(request, f"cannot encode {name}={value!r}")


def _option_for_ref(
    form: Tag,
    request: WriteBackRequest,
    name: str,
    ref: EntityRef,
    index: ReferenceIndex,
) -> str:
    local_id = index.local_id(ref)
    if local_id is not None:
        return local_id
    return _option_for_label(form, request, name, ref.label, kind=ref.kind)


def _option_for_label(
    form: Tag,
    request: WriteBackRequest,
    name: str,
    label: str,
    *,
    kind: EntityKind | None = None,
) -> str:
    wanted = normalize_text(label)
    for value, option_label in select_options(form, name):
        if value and wanted is not None and normalize_text(option_label) == wanted:
            return value
    target = f"{kind} {label!r}" if kind is not None else repr(label)
    raise WriteBackError(request, f"the guide has no {name} option for {target}")
