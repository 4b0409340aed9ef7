"""Reading Django admin change forms.

Every form field is an element with id ``id_<name>``. Inputs yield their
``value`` attribute, checkboxes ``"on"`` when checked, selects the
(value, label) pairs of their selected options and textareas their text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from bs4 import BeautifulSoup, Tag

from guidesync.domain.model import ParseError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

type Widget = Literal["input", "checkbox", "select", "textarea"]

CSRF_FIELD = "csrfmiddlewaretoken"
_VALUE_INPUT_TYPES = frozenset({"text", "number", "hidden"})
_BUTTON_INPUT_TYPES = frozenset({"submit", "button", "reset"})


@dataclass(frozen=True, slots=True)
class FormField:
    name: str
    widget: Widget
    selected: tuple[tuple[str, str], ...]

    @property
    def values(self) -> tuple[str, ...]:
        return tuple(value for value, _ in self.selected)

    @property
    def value(self) -> str | None:
        return self.selected[0][0] if self.selected else None

    @property
    def label(self) -> str | None:
        return self.selected[0][1] if self.selected else None


@dataclass(frozen=True, slots=True)
class ParsedForm:
    fields: Mapping[str, FormField]
    csrf_token: str

    def __getitem__(self, name: str) -> FormField:
        return self.fields[name]


def find_form(html: str | BeautifulSoup, form_id: str, *, locator: str | None = None) -> Tag:
    soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
    form = soup.find(id=form_id)
    if not isinstance(form, Tag):
        raise ParseError("form", f"#{form_id}", locator=locator)
    return form


def csrf_token(form: Tag, *, locator: str | None = None) -> str:
    node = form.find(attrs={"name": CSRF_FIELD})
    if not isinstance(node, Tag) or node.get("value") is None:
        raise ParseError(CSRF_FIELD, "missing token", locator=locator)
    return str(node["value"])


def parse_form(
    html: str,
    form_id: str,
    field_names: Iterable[str],
    *,
    locator: str | None = None,
) -> ParsedForm:
    """Extract ``field_names`` from the form ``#<form_id>``; every field must exist."""

    form = find_form(html, form_id, locator=locator)
    fields: dict[str, FormField] = {}
    for name in field_names:
        node = form.find(id=f"id_{name}")
        if not isinstance(node, Tag):
            raise ParseError(name, f"#id_{name}", locator=locator)
        fields[name] = read_field(name, node, locator=locator)
    return ParsedForm(fields=fields, csrf_token=csrf_token(form, locator=locator))


def read_field(name: str, node: Tag, *, locator: str | None = None) -> FormField:
    match node.name:
        case "input":
            input_type = str(node.get("type", "text")).lower()
            if input_type == "checkbox":
                checked = node.has_attr("checked")
                return FormField(name, "checkbox", (("on", "on"),) if checked else ())
            if input_type not in _VALUE_INPUT_TYPES:
                raise ParseError(name, f"unknown input type {input_type!r}", locator=locator)
            value = str(node.get("value", ""))
            return FormField(name, "input", ((value, value),))
        case "select":
            return FormField(name, "select", tuple(_selected_options(node)))
        case "textarea":
            text = node.get_text()
            # Browsers drop the newline that immediately follows <textarea>.
            text = text.removeprefix("\r\n").removeprefix("\n")
            return FormField(name, "textarea", ((text, text),))
        case _:
            raise ParseError(name, f"unknown field element <{node.name}>", locator=locator)


def select_options(form: Tag, name: str) -> list[tuple[str, str]]:
    """Every (value, label) option of the select named ``name``."""

    node = form.find(id=f"id_{name}")
    if not isinstance(node, Tag) or node.name != "select":
        return []
    return [
        (str(option.get("value", "")), option.get_text(" ", strip=True))
        for option in node.find_all("option")
    ]


def form_pairs(form: Tag, *, locator: str | None = None) -> list[tuple[str, str]]:
    """Every (name, value) pair the browser would submit, in document order.

    The csrf token and buttons are left out.
    """

    pairs: list[tuple[str, str]] = []
    for node in form.find_all(["input", "select", "textarea"]):
        name = node.get("name")
        if not name or name == CSRF_FIELD:
            continue
        name = str(name)
        if node.name == "input":
            input_type = str(node.get("type", "text")).lower()
            if input_type in _BUTTON_INPUT_TYPES:
                continue
        pairs.extend((name, value) for value in read_field(name, node, locator=locator).values)
    return pairs


def _selected_options(select: Tag) -> list[tuple[str, str]]:
    return [
        (str(option.get("value", "")), option.get_text(" ", strip=True))
        for option in select.find_all("option")
        if option.has_attr("selected")
    ]
