"""Exceptions raised by the scraping pipeline and the film store."""


class TrackerError(Exception):
    """Base class for letterboxd_tracker errors."""


class FetchFailed(TrackerError):
    """A page could not be fetched (transport error, timeout or bad status)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class UnknownSymbol(TrackerError, ValueError):
    """A rating glyph sequence outside the half-star vocabulary."""

    def __init__(self, symbol: str):
        super().__init__(f"unknown rating symbol: {symbol!r}")
        self.symbol = symbol


class StoreUnavailable(TrackerError):
    """The film store could not be read or written."""


class ConstraintViolation(TrackerError):
    """A film with the same id is already stored."""

    def __init__(self, film_id: str):
        super().__init__(f"film already stored: {film_id}")
        self.film_id = film_id


class PartialFailure(TrackerError):
    """A sync finished, but some films could not be enriched or stored."""

    def __init__(self, failed: int, report=None):
        super().__init__(f"sync completed with {failed} errors")
        self.failed = failed
        self.report = report
