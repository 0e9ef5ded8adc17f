import pytest

from letterboxd_tracker import sync
from letterboxd_tracker.errors import (
    ConstraintViolation,
    FetchFailed,
    PartialFailure,
    StoreUnavailable,
)
from letterboxd_tracker.models import Film


def _film(film_id: str, title: str | None = None) -> Film:
    return Film(film_id=film_id, title=title or film_id.title(), url=f"/film/{film_id}/")


class DummyScraper:
    """Stands in for LetterboxdScraper without touching the network."""

    def __init__(self, films=None, fail_listing=False, fail_enrich=()):
        self.films = films or []
        self.fail_listing = fail_listing
        self.fail_enrich = set(fail_enrich)
        self.enriched = []
        self.closed = False

    def list_films(self, username):
        if self.fail_listing:
            raise FetchFailed(f"https://letterboxd.com/{username}/films/page/1/", "HTTP 500")
        return list(self.films)

    def enrich(self, film):
        self.enriched.append(film.film_id)
        if film.film_id in self.fail_enrich:
            raise FetchFailed(film.url, "HTTP 404")
        film.year = 2000
        film.director = "Someone"

    def close(self):
        self.closed = True


def test_sync_stores_new_films(fresh_db):
    dummy = DummyScraper([_film("a"), _film("b")])

    report = sync.sync_user("alice", scraper=dummy, delay=0.0)

    assert (report.found, report.scraped, report.skipped, report.failed) == (2, 2, 0, 0)
    assert dummy.enriched == ["a", "b"]
    assert {f.film_id for f in fresh_db.load_all_films()} == {"a", "b"}
    assert fresh_db.load_all_films()[0].director == "Someone"
    assert dummy.closed is False  # caller-owned scraper stays open


def test_sync_skips_known_films_without_enriching(fresh_db):
    fresh_db.add_film(Film(film_id="x", title="Stored", url="/film/x/", rating=4.0))
    dummy = DummyScraper([_film("x", "Rescraped"), _film("y")])

    report = sync.sync_user("alice", scraper=dummy, delay=0.0)

    assert dummy.enriched == ["y"]
    assert report.skipped == 1
    assert report.scraped == 1
    stored = {f.film_id: f for f in fresh_db.load_all_films()}
    assert stored["x"].title == "Stored"
    assert stored["x"].rating == 4.0
    assert stored["x"].year == 0


def test_listing_failure_propagates_and_stores_nothing(fresh_db):
    dummy = DummyScraper([_film("a")], fail_listing=True)

    with pytest.raises(FetchFailed):
        sync.sync_user("alice", scraper=dummy, delay=0.0)

    assert dummy.enriched == []
    assert fresh_db.count_films() == 0


def test_enrich_failure_is_isolated_and_reported(fresh_db):
    dummy = DummyScraper([_film("a"), _film("broken"), _film("c")], fail_enrich={"broken"})

    with pytest.raises(PartialFailure) as exc_info:
        sync.sync_user("alice", scraper=dummy, delay=0.0)

    err = exc_info.value
    assert err.failed == 1
    assert (err.report.scraped, err.report.skipped, err.report.failed) == (2, 0, 1)
    assert dummy.enriched == ["a", "broken", "c"]
    assert not fresh_db.film_exists("broken")
    assert fresh_db.film_exists("c")


def test_existence_check_failure_counts_as_failed(fresh_db, monkeypatch):
    def flaky_exists(film_id):
        if film_id == "a":
            raise StoreUnavailable("database is locked")
        return False

    monkeypatch.setattr(sync, "film_exists", flaky_exists)
    dummy = DummyScraper([_film("a"), _film("b")])

    with pytest.raises(PartialFailure) as exc_info:
        sync.sync_user("alice", scraper=dummy, delay=0.0)

    assert exc_info.value.failed == 1
    assert dummy.enriched == ["b"]


def test_insert_race_counts_as_failed(fresh_db, monkeypatch):
    # Another sync stored the film between the existence check and the insert
    def racing_add(film):
        raise ConstraintViolation(film.film_id)

    monkeypatch.setattr(sync, "add_film", racing_add)
    dummy = DummyScraper([_film("a")])

    with pytest.raises(PartialFailure) as exc_info:
        sync.sync_user("alice", scraper=dummy, delay=0.0)

    assert exc_info.value.report.scraped == 0
    assert exc_info.value.report.failed == 1


def test_sync_paces_after_each_stored_film(fresh_db, monkeypatch):
    sleeps = []
    monkeypatch.setattr(sync.time, "sleep", lambda seconds: sleeps.append(seconds))
    fresh_db.add_film(_film("known"))
    dummy = DummyScraper([_film("known"), _film("a"), _film("b")])

    sync.sync_user("alice", scraper=dummy, delay=0.25)

    assert sleeps == [0.25, 0.25]


def test_sync_closes_scraper_it_creates(fresh_db, monkeypatch):
    dummy = DummyScraper([])
    monkeypatch.setattr(sync, "LetterboxdScraper", lambda delay: dummy)

    report = sync.sync_user("alice", delay=0.0)

    assert report.found == 0
    assert dummy.closed is True


def test_oversized_field_fails_one_film_and_sync_continues(fresh_db):
    class OversizedScraper(DummyScraper):
        def enrich(self, film):
            super().enrich(film)
            if film.film_id == "a":
                film.runtime = 10**20

    dummy = OversizedScraper([_film("a"), _film("b")])

    with pytest.raises(PartialFailure) as exc_info:
        sync.sync_user("alice", scraper=dummy, delay=0.0)

    assert exc_info.value.failed == 1
    assert exc_info.value.report.scraped == 1
    assert not fresh_db.film_exists("a")
    assert fresh_db.film_exists("b")
