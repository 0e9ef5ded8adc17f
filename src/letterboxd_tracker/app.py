"""Host-facing facade over the sync pipeline and the film store."""
import logging

from . import database
from .errors import StoreUnavailable
from .models import CollectionStats, Film
from .sync import SyncReport, sync_user

logger = logging.getLogger(__name__)


class TrackerApp:
    """
    Synchronous API for a host shell (GUI or CLI).

    Every call blocks; hosts with an event loop should run them off it.
    """

    def __init__(self):
        self._ready = False

    def startup(self) -> None:
        logger.info(f"Initializing database at: {database.DB_PATH}")
        database.init_db()
        self._ready = True

    def shutdown(self) -> None:
        if self._ready:
            database.close_db()
            self._ready = False

    def _require_db(self) -> None:
        if not self._ready:
            raise StoreUnavailable("database not initialized")

    def sync(self, username: str, show_progress: bool = False) -> SyncReport:
        self._require_db()
        return sync_user(username, show_progress=show_progress)

    def list_all(self) -> list[Film]:
        self._require_db()
        return database.load_all_films()

    def search_by_title(self, query: str) -> list[Film]:
        self._require_db()
        return database.search_films_by_title(query)

    def filter_by_rating(self, min_rating: float) -> list[Film]:
        self._require_db()
        return database.load_films_by_min_rating(min_rating)

    def filter_by_year(self, year: int) -> list[Film]:
        self._require_db()
        return database.load_films_by_year(year)

    def stats(self) -> CollectionStats:
        self._require_db()
        return database.get_stats()
