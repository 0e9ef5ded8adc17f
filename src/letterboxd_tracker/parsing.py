"""
Field extractors shared by the listing walker and the detail rules.

All functions here are pure: they turn raw text from a page into typed
values. Unparsable input yields a zero value, except for rating glyphs,
where callers need to tell "unrated" apart from "unrecognized".
"""
import re
from typing import Iterable

from .errors import UnknownSymbol

_FILM_URL_PREFIXES = (
    "https://letterboxd.com/film/",
    "http://letterboxd.com/film/",
    "/film/",
)

_SYMBOL_RATINGS = {
    "½": 0.5,
    "★": 1.0,
    "★½": 1.5,
    "★★": 2.0,
    "★★½": 2.5,
    "★★★": 3.0,
    "★★★½": 3.5,
    "★★★★": 4.0,
    "★★★★½": 4.5,
    "★★★★★": 5.0,
}

_COMPACT_RUNTIME = re.compile(r"^\s*(?:(\d+)\s*h)?\s*(?:(\d+)\s*m)?")


def rating_from_symbol(text: str) -> float:
    """
    Convert a star glyph sequence like '★★★½' to 3.5.

    Raises UnknownSymbol for anything outside the half-star vocabulary.
    """
    symbol = (text or "").strip()
    try:
        return _SYMBOL_RATINGS[symbol]
    except KeyError:
        raise UnknownSymbol(symbol) from None


def film_id_from_url(url: str) -> str:
    """
    Extract the film slug from a Letterboxd film URL.

    'https://letterboxd.com/film/the-shawshank-redemption/' -> 'the-shawshank-redemption'
    """
    for prefix in _FILM_URL_PREFIXES:
        if url.startswith(prefix):
            url = url[len(prefix):]
            break
    if url.endswith("/"):
        url = url[:-1]
    return url


def runtime_from_text(text: str) -> int:
    """
    Parse runtime minutes from '148 mins More at IMDb' or '2h 28m'.

    Returns 0 when neither shape matches.
    """
    text = (text or "").strip()
    parts = text.split()
    if parts and parts[0].isdigit():
        try:
            return int(parts[0])
        except ValueError:
            # isdigit() accepts superscripts and other digits int() rejects
            pass

    if "h" in text and "m" in text:
        match = _COMPACT_RUNTIME.match(text)
        if match and any(match.groups()):
            try:
                hours = int(match.group(1) or 0)
                minutes = int(match.group(2) or 0)
            except ValueError:
                return 0
            return hours * 60 + minutes

    return 0


def float_from_text(text: str) -> float:
    try:
        return float((text or "").strip())
    except ValueError:
        return 0.0


def int_from_text(text: str) -> int:
    try:
        return int((text or "").strip())
    except ValueError:
        return 0


def rating_from_aggregate_text(text: str) -> float:
    """Parse '4.55 out of 5' -> 4.55."""
    parts = (text or "").split()
    if not parts:
        return 0.0
    return float_from_text(parts[0])


def join_names(names: Iterable[str], limit: int | None = None) -> str:
    """Trim names, drop blanks, keep at most `limit` of them and comma-join."""
    kept: list[str] = []
    for name in names:
        name = name.strip()
        if not name:
            continue
        kept.append(name)
        if limit is not None and len(kept) >= limit:
            break
    return ", ".join(kept)
