"""Structural reading of a codex page.

A page has a ``.herotext`` name, a ``.codex-page`` root holding the icon,
``.codex-page-meta`` lines, ``.codex-page-description`` nodes, an optional
``.codex-stats`` block and ``<h4>`` sections whose entries are the sibling
``div``s up to the next ``h4`` or ``hr``. Items with an off-hand skill carry an
``Ability: <name>`` line followed by the skill's description.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from guidesync.domain.model import ParseError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

SECTION_HEADINGS = frozenset(
    {
        "Causes:",
        "Gives:",
        "Cures:",
        "Immunities:",
        "Dropped by:",
        "Upgrade materials:",
        "Abilities:",
        "Drops:",
        "Summons:",
    }
)

KNOWN_TAGS = frozenset(
    {
        "Found in chests",
        "Found in shops",
        "World Raid",
        "Kingdom Raid",
        "Off-hand ability",
        "Found in Arcanists",
        "Other Realms Raid",
        "Found in the arena",
    }
)

_CHANCE_SUFFIX = re.compile(r"\s*\(\s*[+-]?\d+(?:\.\d+)?%?\s*\)$")


@dataclass(frozen=True, slots=True)
class CodexMeta:
    tier: int | None = None
    rarity: str | None = None
    useable_by: str | None = None
    place: str | None = None
    weapon_type: str | None = None
    exotic: bool = False


@dataclass(frozen=True, slots=True)
class SectionEntry:
    name: str
    href: str | None


@dataclass(frozen=True, slots=True)
class Description:
    text: str
    highlight: bool


@dataclass(frozen=True, slots=True)
class CodexPage:
    name: str
    icon: str
    meta: CodexMeta
    descriptions: tuple[Description, ...]
    stats: tuple[str, ...] | None
    sections: Mapping[str, tuple[SectionEntry, ...]]
    tags: frozenset[str]
    ability: str | None = None

    def section(self, heading: str) -> tuple[SectionEntry, ...]:
        return self.sections.get(heading, ())


def read_codex_page(html: str, *, locator: str | None = None) -> CodexPage:
    soup = BeautifulSoup(html, "html.parser")
    name = soup.select_one(".herotext")
    if name is None:
        raise ParseError("name", ".herotext", locator=locator)
    page = soup.select_one(".codex-page")
    if page is None:
        raise ParseError("page", ".codex-page", locator=locator)

    return CodexPage(
        name=name.get_text(" ", strip=True),
        icon=_read_icon(page, locator),
        meta=_read_meta(page, locator),
        descriptions=tuple(
            Description(
                node.get_text(" ", strip=True),
                "codex-page-description-highlight" in (node.get("class") or []),
            )
            for node in page.select(".codex-page-description")
        ),
        stats=_read_stats(page),
        sections=_read_sections(page, locator),
        tags=_read_tags(page, locator),
        ability=_read_ability(page),
    )


def icon_path(url: str) -> str:
    """``https://host/static/img/items/x.png`` -> ``items/x.png``."""

    path = urlsplit(url).path
    path = path.removeprefix("/static/img")
    return path.removeprefix("/")


def parse_tier(text: str, *, locator: str | None = None) -> int:
    """``"Tier: ★5"`` -> ``5``."""

    _, sep, value = text.partition(":")
    value = value.strip()
    if not sep or not value.startswith("★"):
        raise ParseError("tier", text, locator=locator)
    digits = value.removeprefix("★").strip()
    if not digits.isdigit():
        raise ParseError("tier", text, locator=locator)
    return int(digits, 10)


def strip_chance(text: str) -> str:
    """``"Burning (20%)"`` -> ``"Burning"``."""

    return _CHANCE_SUFFIX.sub("", text).strip()


def _read_icon(page: Tag, locator: str | None) -> str:
    img = page.select_one(".codex-page-icon img[src]")
    if img is None:
        raise ParseError("image_name", ".codex-page-icon img", locator=locator)
    return icon_path(str(img["src"]))


def _read_meta(page: Tag, locator: str | None) -> CodexMeta:
    values: dict[str, object] = {}
    for node in page.select(".codex-page-meta"):
        exotic = node.select_one(".exotic")
        text = node.get_text(" ", strip=True)
        if exotic is not None:
            if exotic.get_text(strip=True) != "Exotic":
                raise ParseError("meta", text, locator=locator)
            values["exotic"] = True
        elif text.startswith("Tier:"):
            values["tier"] = parse_tier(text, locator=locator)
        elif text.startswith("Rarity:"):
            values["rarity"] = text.removeprefix("Rarity:").strip()
        elif text.startswith("Useable by:"):
            values["useable_by"] = text.removeprefix("Useable by:").strip()
        elif text.startswith("Place:"):
            values["place"] = text.removeprefix("Place:").strip()
        elif text.startswith("Type:"):
            values["weapon_type"] = text.removeprefix("Type:").strip()
        else:
            raise ParseError("meta", text, locator=locator)
    return CodexMeta(**values)  # type: ignore[arg-type]


def _read_stats(page: Tag) -> tuple[str, ...] | None:
    block = page.select_one(".codex-stats")
    if block is None:
        return None
    lines: list[str] = []
    for node in block.select(".codex-stat"):
        text = node.get_text(" ", strip=True)
        # Only " / " separates stats: "Def/Res Penetration" is a single label.
        lines.extend(part.strip() for part in text.split(" / ") if part.strip())
    return tuple(lines)


def _read_sections(page: Tag, locator: str | None) -> dict[str, tuple[SectionEntry, ...]]:
    sections: dict[str, tuple[SectionEntry, ...]] = {}
    for heading in page.find_all("h4"):
        title = heading.get_text(" ", strip=True)
        if title not in SECTION_HEADINGS:
            raise ParseError("section", title, locator=locator)
        sections[title] = tuple(_section_entries(heading, title, locator))
    return sections


def _section_entries(heading: Tag, title: str, locator: str | None) -> Iterator[SectionEntry]:
    for sibling in heading.find_next_siblings():
        if sibling.name in {"h4", "hr"}:
            return
        if sibling.name != "div":
            raise ParseError(title, f"<{sibling.name}>", locator=locator)
        anchor = sibling.find("a", href=True)
        href = str(anchor["href"]) if isinstance(anchor, Tag) else None
        yield SectionEntry(sibling.get_text(" ", strip=True), href)


def _read_ability(page: Tag) -> str | None:
    for node in page.find_all("div", recursive=False):
        label, sep, name = node.get_text(" ", strip=True).partition(":")
        if sep and label.strip() == "Ability" and name.strip():
            return name.strip()
    return None


def _read_tags(page: Tag, locator: str | None) -> frozenset[str]:
    tags: set[str] = set()
    for node in page.select(".codex-page-tag"):
        text = node.get_text(" ", strip=True).removeprefix("✓").strip()
        if text not in KNOWN_TAGS:
            raise ParseError("tag", text, locator=locator)
        tags.add(text)
    return frozenset(tags)
