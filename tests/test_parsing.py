import pytest

from letterboxd_tracker import parsing
from letterboxd_tracker.errors import UnknownSymbol


@pytest.mark.parametrize(
    "symbol, expected",
    [
        ("½", 0.5),
        ("★", 1.0),
        ("★½", 1.5),
        ("★★", 2.0),
        ("★★½", 2.5),
        ("★★★", 3.0),
        ("★★★½", 3.5),
        ("★★★★", 4.0),
        ("★★★★½", 4.5),
        ("★★★★★", 5.0),
    ],
)
def test_rating_from_symbol_vocabulary(symbol, expected):
    assert parsing.rating_from_symbol(symbol) == expected


def test_rating_from_symbol_trims_whitespace():
    assert parsing.rating_from_symbol("  ★★★½ \n") == 3.5


@pytest.mark.parametrize("symbol", ["", "★★★★★★", "½★", "4 stars", "*"])
def test_rating_from_symbol_rejects_unknown(symbol):
    with pytest.raises(UnknownSymbol):
        parsing.rating_from_symbol(symbol)


def test_unknown_symbol_is_a_value_error():
    with pytest.raises(ValueError):
        parsing.rating_from_symbol("??")


@pytest.mark.parametrize("slug", ["the-shawshank-redemption", "x", "film-2023-1"])
def test_film_id_from_url_ignores_scheme(slug):
    https = parsing.film_id_from_url(f"https://letterboxd.com/film/{slug}/")
    http = parsing.film_id_from_url(f"http://letterboxd.com/film/{slug}/")
    assert https == http == slug


def test_film_id_from_url_handles_relative_and_bare_values():
    assert parsing.film_id_from_url("/film/perfect-blue/") == "perfect-blue"
    assert parsing.film_id_from_url("perfect-blue") == "perfect-blue"
    assert parsing.film_id_from_url("https://letterboxd.com/film/perfect-blue") == "perfect-blue"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("148 mins More", 148),
        ("  96 mins   More at IMDb TMDb ", 96),
        ("2h 28m", 148),
        ("1h 5m", 65),
        ("garbage", 0),
        ("", 0),
        ("² mins", 0),
        ("¹h ²m", 0),
    ],
)
def test_runtime_from_text_shapes(text, expected):
    assert parsing.runtime_from_text(text) == expected


def test_numeric_helpers_never_raise():
    assert parsing.float_from_text(" 3.25 ") == 3.25
    assert parsing.float_from_text("n/a") == 0.0
    assert parsing.int_from_text(" 1994\n") == 1994
    assert parsing.int_from_text("199x") == 0


def test_rating_from_aggregate_text():
    assert parsing.rating_from_aggregate_text("4.55 out of 5") == 4.55
    assert parsing.rating_from_aggregate_text("") == 0.0
    assert parsing.rating_from_aggregate_text("unrated") == 0.0


def test_join_names_trims_and_caps():
    assert parsing.join_names([" A ", "", "B", "  ", "C"], limit=2) == "A, B"
    assert parsing.join_names(["A", "B"]) == "A, B"
    assert parsing.join_names([]) == ""
