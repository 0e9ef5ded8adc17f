"""
Two-pass sync of a user's watched films into the local store.

Pass 1 walks the user's film pages. Pass 2 visits the detail page of every
film that is not stored yet and saves it. Films already in the store are
never refetched or updated.
"""
import logging
import time
from dataclasses import dataclass

from tqdm import tqdm

from .config import DEFAULT_SCRAPER_DELAY
from .database import add_film, film_exists
from .errors import FetchFailed, PartialFailure, StoreUnavailable, TrackerError
from .scraper import LetterboxdScraper

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    username: str
    found: int = 0
    scraped: int = 0
    skipped: int = 0
    failed: int = 0

    def summary(self) -> str:
        return f"Scraped {self.scraped}, Skipped {self.skipped}, Failed {self.failed}"


def sync_user(
    username: str,
    scraper: LetterboxdScraper | None = None,
    delay: float = DEFAULT_SCRAPER_DELAY,
    show_progress: bool = False,
) -> SyncReport:
    """
    Mirror `username`'s watched films into the store.

    Raises FetchFailed if the film list cannot be walked (nothing is stored
    in that case) and PartialFailure if some films could not be enriched or
    saved. Per-film failures never stop the remaining films.
    """
    owns_scraper = scraper is None
    if owns_scraper:
        scraper = LetterboxdScraper(delay=delay)

    try:
        logger.info(f"Starting sync for user: {username}")
        films = scraper.list_films(username)
        report = SyncReport(username=username, found=len(films))
        logger.info(f"Pass 1 complete: found {len(films)} films")

        total = len(films)
        for i, film in enumerate(tqdm(films, desc="Films", disable=not show_progress), start=1):
            try:
                exists = film_exists(film.film_id)
            except StoreUnavailable as e:
                logger.error(f"Error checking if {film.film_id} exists: {e}")
                report.failed += 1
                continue

            if exists:
                logger.debug(f"[{i}/{total}] Skipping existing film: {film.title}")
                report.skipped += 1
                continue

            logger.info(f"[{i}/{total}] Scraping details for: {film.title}")
            try:
                scraper.enrich(film)
            except FetchFailed as e:
                logger.error(f"Error scraping details for {film.title}: {e}")
                report.failed += 1
                continue

            try:
                add_film(film)
            except TrackerError as e:
                logger.error(f"Error saving film {film.title}: {e}")
                report.failed += 1
                continue

            report.scraped += 1
            time.sleep(delay)
    finally:
        if owns_scraper:
            scraper.close()

    logger.info(f"Pass 2 complete: {report.summary()}")

    if report.failed > 0:
        raise PartialFailure(report.failed, report)
    return report
