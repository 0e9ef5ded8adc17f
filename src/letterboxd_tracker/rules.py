"""
Ordered extraction rules for Letterboxd film detail pages.

Every rule reads one region of the page and proposes a value for one field
of a Film. How that value is merged is decided by the rule's mode:

- ``fill``: only set the field while it still holds its default
- ``append``: comma-join after whatever is already there
- ``override``: authoritative, replaces any earlier value

Rules run in the order of DETAIL_RULES, so a crew-section listing always
gets the last word over the inline director byline.
"""
import json
import logging
from dataclasses import dataclass, fields
from typing import Any, Callable

from selectolax.parser import HTMLParser, Node

from .config import MAX_CAST, MAX_DIRECTORS, MAX_WRITERS
from .models import Film
from .parsing import (
    int_from_text,
    join_names,
    rating_from_aggregate_text,
    runtime_from_text,
)

logger = logging.getLogger(__name__)

FILL = "fill"
APPEND = "append"
OVERRIDE = "override"

_NON_ELEMENT_TAGS = {"-text", "-comment", "_comment"}


@dataclass(frozen=True)
class ExtractionRule:
    name: str
    field: str
    extract: Callable[[HTMLParser], Any]
    mode: str = FILL
    limit: int | None = None

    @property
    def authoritative(self) -> bool:
        return self.mode == OVERRIDE


def _extract_year(tree: HTMLParser) -> int:
    # Letterboxd markup drifts; try several year locations
    el = tree.css_first("span.releasedate, div.releaseyear a, small.number a")
    return int_from_text(el.text(strip=True)) if el else 0


def _extract_runtime(tree: HTMLParser) -> int:
    el = tree.css_first("p.text-link.text-footer")
    return runtime_from_text(el.text()) if el else 0


def _extract_public_rating(tree: HTMLParser) -> float:
    meta = tree.css_first("meta[name='twitter:data2']")
    if not meta:
        return 0.0
    return rating_from_aggregate_text(meta.attributes.get("content") or "")


def _extract_poster(tree: HTMLParser) -> str:
    for script in tree.css("script[type='application/ld+json']"):
        # Letterboxd wraps the JSON in /* <![CDATA[ */ ... /* ]]> */; only that wrapper is removed
        cleaned = script.text().strip()
        cleaned = cleaned.removeprefix("/* <![CDATA[ */").removesuffix("/* ]]> */").strip()
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            logger.debug(f"Ignoring malformed ld+json block: {exc}")
            continue
        if isinstance(data, list):
            data = data[0] if data else {}
        image = data.get("image") if isinstance(data, dict) else None
        if isinstance(image, str) and image:
            return image
    return ""


def _extract_inline_directors(tree: HTMLParser) -> list[str]:
    return [a.text() for a in tree.css("span.directorlist a")]


def _next_element(node: Node) -> Node | None:
    sibling = node.next
    while sibling is not None and sibling.tag in _NON_ELEMENT_TAGS:
        sibling = sibling.next
    return sibling


def _crew_names(tree: HTMLParser, role: str, excluded: tuple[str, ...], limit: int) -> list[str]:
    """
    Names listed under the crew tab heading for `role`.

    When several headings match, the last one with names wins.
    """
    crew = tree.css_first("div#tab-crew")
    if not crew:
        return []

    names: list[str] = []
    for heading in crew.css("h3"):
        text = heading.text(strip=True)
        if role not in text or any(word in text for word in excluded):
            continue
        block = _next_element(heading)
        if block is None:
            continue
        found = [a.text(strip=True) for a in block.css("a.text-slug")]
        found = [name for name in found if name][:limit]
        if found:
            names = found
    return names


def _extract_crew_directors(tree: HTMLParser) -> list[str]:
    return _crew_names(tree, "Director", ("Assistant", "Original"), MAX_DIRECTORS)


def _extract_crew_writers(tree: HTMLParser) -> list[str]:
    return _crew_names(tree, "Writer", ("Original", "Story", "Screenplay"), MAX_WRITERS)


def _is_cast_overflow(link: Node) -> bool:
    return (
        link.attributes.get("id") == "has-cast-overflow"
        or "show all" in link.text().lower()
    )


def _extract_cast(tree: HTMLParser) -> list[str]:
    return [
        a.text()
        for a in tree.css("div.cast-list a.text-slug")
        if not _is_cast_overflow(a)
    ]


DETAIL_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule("release_year", "year", _extract_year),
    ExtractionRule("runtime", "runtime", _extract_runtime),
    ExtractionRule("public_rating", "public_rating", _extract_public_rating),
    ExtractionRule("poster", "poster_url", _extract_poster),
    ExtractionRule("inline_directors", "director", _extract_inline_directors, APPEND, MAX_DIRECTORS),
    ExtractionRule("crew_directors", "director", _extract_crew_directors, OVERRIDE, MAX_DIRECTORS),
    ExtractionRule("crew_writers", "writers", _extract_crew_writers, OVERRIDE, MAX_WRITERS),
    ExtractionRule("cast", "cast", _extract_cast, FILL, MAX_CAST),
)

_FIELD_DEFAULTS = {f.name: f.default for f in fields(Film)}


def _merge(rule: ExtractionRule, current: Any, value: Any) -> Any:
    if not isinstance(value, list):
        return value
    if rule.mode == APPEND and current:
        value = current.split(",") + value
    return join_names(value, rule.limit)


def apply_rule(rule: ExtractionRule, tree: HTMLParser, film: Film) -> bool:
    """
    Run one rule against a parsed page and merge its result into `film`.

    Returns True when the film was changed. A rule that finds nothing
    leaves the field untouched.
    """
    value = rule.extract(tree)
    if isinstance(value, list):
        value = [name for name in value if name.strip()]
    if not value:
        logger.debug(f"Rule '{rule.name}' found nothing for {film.film_id}")
        return False

    current = getattr(film, rule.field)
    if rule.mode == FILL and current != _FIELD_DEFAULTS[rule.field]:
        return False

    merged = _merge(rule, current, value)
    setattr(film, rule.field, merged)
    return True


def apply_detail_rules(tree: HTMLParser, film: Film, rules: tuple[ExtractionRule, ...] = DETAIL_RULES) -> Film:
    """Apply `rules` in order to `film`, mutating it in place."""
    for rule in rules:
        apply_rule(rule, tree, film)
    return film
