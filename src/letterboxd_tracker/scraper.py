import httpx
import time
import logging
from selectolax.parser import HTMLParser, Node
from .config import (
    BASE_URL,
    USER_AGENT,
    HTTP_TIMEOUT,
    MAX_HTTP_RETRIES,
    DEFAULT_SCRAPER_DELAY,
)
from .errors import FetchFailed, UnknownSymbol
from .models import Film
from .parsing import film_id_from_url, rating_from_symbol
from .rules import apply_detail_rules

logger = logging.getLogger(__name__)


def _parse_rating_span(span: Node) -> float:
    """
    Parse a tile rating from its star glyphs, e.g. '★★★½' -> 3.5.

    Falls back to a 'rated-7' style class when the span carries no glyphs.
    Returns 0.0 when the tile is unrated or the rating is unrecognized.
    """
    text = span.text(strip=True)
    if text:
        try:
            return rating_from_symbol(text)
        except UnknownSymbol as exc:
            logger.debug(f"Treating tile as unrated: {exc}")
            return 0.0

    for cls in (span.attributes.get("class") or "").split():
        if cls.startswith("rated-"):
            try:
                val = int(cls.replace("rated-", "")) / 2
            except ValueError as exc:
                logger.debug(f"Unexpected rating format in class '{cls}': {exc}")
                return 0.0
            return val if 0.5 <= val <= 5.0 else 0.0
    return 0.0


def _parse_tile(item: Node) -> Film | None:
    """Build a minimal Film from one `li.griditem` tile, or None if unusable."""
    title = item.attributes.get("data-film-name") or ""
    url = item.attributes.get("data-film-link") or ""

    if not title or not url:
        # Newer markup keeps the data on a nested react component
        react_comp = item.css_first("div.react-component[data-item-name]")
        title = (react_comp.attributes.get("data-item-name") or "") if react_comp else ""
        react_comp = item.css_first("div.react-component[data-item-link]")
        url = (react_comp.attributes.get("data-item-link") or "") if react_comp else ""

    if not title or not url:
        return None

    rating = 0.0
    rating_span = item.css_first("p.poster-viewingdata span.rating")
    if rating_span:
        rating = _parse_rating_span(rating_span)

    return Film(film_id=film_id_from_url(url), title=title, url=url, rating=rating)


def parse_films_page(tree: HTMLParser) -> tuple[list[Film], bool]:
    """
    Parse one page of a user's films grid.

    Returns the films on the page and whether a next page link exists.
    """
    films = []
    for item in tree.css("li.griditem"):
        film = _parse_tile(item)
        if film is None:
            logger.debug("Dropping tile without title or link")
            continue
        films.append(film)

    has_next = tree.css_first("a.next") is not None
    return films, has_next


def absolute_url(url: str) -> str:
    if url.startswith("http"):
        return url
    return BASE_URL + url


class LetterboxdScraper:
    """
    Sequential Letterboxd client: walks a user's film pages, then enriches
    single films from their detail pages.
    """
    BASE = BASE_URL

    def __init__(self, delay: float = DEFAULT_SCRAPER_DELAY, client: httpx.Client | None = None):
        self.client = client or httpx.Client(
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            timeout=HTTP_TIMEOUT,
        )
        self.delay = delay

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _get(self, url: str, max_retries: int = MAX_HTTP_RETRIES) -> HTMLParser:
        """
        Fetch and parse an HTML page.

        Timeouts are retried up to `max_retries` attempts; every other
        transport error or non-success status raises FetchFailed.
        """
        for attempt in range(1, max_retries + 1):
            try:
                resp = self.client.get(url)
                resp.raise_for_status()
                return HTMLParser(resp.text)
            except httpx.TimeoutException as e:
                if attempt < max_retries:
                    logger.warning(f"Timeout on {url}, retrying... (attempt {attempt}/{max_retries})")
                    continue
                logger.error(f"Max retries exceeded for {url}: {e}")
                raise FetchFailed(url, f"timed out after {max_retries} attempts") from e
            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP error on {url}: {e.response.status_code}")
                raise FetchFailed(url, f"HTTP {e.response.status_code}") from e
            except httpx.HTTPError as e:
                logger.error(f"Request error on {url}: {e}")
                raise FetchFailed(url, str(e)) from e
        raise FetchFailed(url, "no attempts made")

    def films_page_url(self, username: str, page: int) -> str:
        return f"{self.BASE}/{username}/films/page/{page}/"

    def list_films(self, username: str) -> list[Film]:
        """
        Walk every page of a user's watched films.

        Stops after the first page without a next link. A failure on any
        page raises FetchFailed and discards what was collected so far.
        """
        films: list[Film] = []
        page = 1

        logger.info(f"Scraping {username}'s films...")
        while True:
            url = self.films_page_url(username, page)
            logger.debug(f"  Fetching page {page}: {url}")
            page_films, has_next = parse_films_page(self._get(url))
            films.extend(page_films)
            logger.debug(f"  Films page {page}: {len(page_films)} films")

            if not has_next:
                break

            page += 1
            time.sleep(self.delay)

        logger.info(f"Total: {len(films)} films across {page} pages")
        return films

    def enrich(self, film: Film) -> None:
        """Fetch the film's detail page and fill in metadata in place."""
        tree = self._get(absolute_url(film.url))
        apply_detail_rules(tree, film)

    def close(self):
        self.client.close()
