from __future__ import annotations

import pytest

from guidesync.adapters.codex import read_codex_page
from guidesync.adapters.codex.page import icon_path, parse_tier, strip_chance
from guidesync.domain.model import ParseError
from tests.support import codex_pages


def test_read_codex_page_structure() -> None:
    page = read_codex_page(codex_pages.ring_of_vitality_page())

    assert page.name == "Ring of Vitality"
    assert page.icon == "items/ring_of_vitality.png"
    assert page.meta.tier == 3
    assert page.meta.rarity == "Common"
    assert page.meta.useable_by == "All"
    assert page.meta.exotic is False
    assert page.stats == ("Attack: 12", "HP: 25", "Adornment Slots: 1")
    assert [entry.name for entry in page.section("Gives:")] == ["Regen (10%)"]
    assert page.section("Dropped by:")[0].href == "/codex/monsters/slime/"
    assert page.section("Causes:") == ()
    assert page.tags == frozenset({"Found in chests"})


def test_page_without_stats_block() -> None:
    page = read_codex_page(codex_pages.slime_page())

    assert page.stats is None
    assert [d.text for d in page.descriptions] == ["Family: Slime", "Rarity: Common"]


def test_highlighted_description_is_flagged() -> None:
    page = read_codex_page(
        codex_pages.codex_page(name="Pumpkin", icon="monsters/p.png", highlight="Event: Halloween")
    )

    assert page.descriptions[0].highlight is True


def test_slash_inside_a_label_is_not_a_separator() -> None:
    page = read_codex_page(
        codex_pages.ring_of_vitality_page(stats=["Def/Res Penetration: 5% / Attack: 3"])
    )

    assert page.stats == ("Def/Res Penetration: 5%", "Attack: 3")


def test_exotic_and_place_meta() -> None:
    page = read_codex_page(
        codex_pages.ring_of_vitality_page(
            meta=["Tier: ★10", '<span class="exotic">Exotic</span>', "Place: Off-hand"]
        )
    )

    assert page.meta.tier == 10
    assert page.meta.exotic is True
    assert page.meta.place == "Off-hand"


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"meta": ["Tier: ★3", "Speed: fast"]}, "meta"),
        ({"sections": {"Lore:": [("Once upon a time", None)]}}, "section"),
        ({"tags": ["Found under rocks"]}, "tag"),
        ({"icon": "items/x.png", "meta": ["Tier: 3"]}, "tier"),
    ],
)
def test_unknown_structure_raises(overrides: dict[str, object], field: str) -> None:
    with pytest.raises(ParseError) as exc:
        read_codex_page(codex_pages.ring_of_vitality_page(**overrides), locator="ring")

    assert exc.value.field == field
    assert exc.value.locator == "ring"


def test_missing_name_raises() -> None:
    with pytest.raises(ParseError) as exc:
        read_codex_page("<html><div class='codex-page'></div></html>")

    assert exc.value.field == "name"


def test_helpers() -> None:
    assert icon_path("https://playorna.com/static/img/items/ring.png") == "items/ring.png"
    assert icon_path("/static/img/monsters/slime.png") == "monsters/slime.png"
    assert parse_tier("Tier: ★ 7") == 7
    with pytest.raises(ParseError):
        parse_tier("Tier: ★seven")
    assert strip_chance("Burning (20%)") == "Burning"
    assert strip_chance("Regen") == "Regen"
    assert strip_chance("Bleeding (+5.5%)") == "Bleeding"
