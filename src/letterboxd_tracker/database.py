import sqlite3
import logging
import threading
from collections import Counter
from contextlib import contextmanager
from datetime import datetime
from .config import DB_PATH, STATS_TOP_N
from .errors import ConstraintViolation, StoreUnavailable
from .models import CollectionStats, Film, PersonCount, YearCount

logger = logging.getLogger(__name__)

FILM_COLUMNS = """
    film_id, title, year, url, rating, public_rating,
    runtime, added_at, poster_url, director, "cast", writers
"""

# Name-list columns that get_stats() ranks people from
PEOPLE_COLUMNS = {
    "director": "director",
    "cast": '"cast"',
    "writers": "writers",
}


def parse_timestamp_naive(timestamp_str: str) -> datetime:
    """
    Parse ISO format timestamp string to naive datetime.

    Ensures consistency by always returning naive datetime regardless of
    whether the stored timestamp had timezone info.
    """
    dt = datetime.fromisoformat(timestamp_str)
    return dt.replace(tzinfo=None) if dt.tzinfo else dt


# Single shared connection; SQLite access is sequential behind the lock
_conn: sqlite3.Connection | None = None
_conn_lock = threading.RLock()
_transaction_depth = 0


def _create_connection() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(exist_ok=True, parents=True)
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA busy_timeout = 5000")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def _get_connection() -> sqlite3.Connection:
    global _conn
    if _conn is None:
        try:
            _conn = _create_connection()
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailable(f"cannot open database at {DB_PATH}: {e}") from e
        logger.debug(f"Opened database at {DB_PATH}")
    return _conn


@contextmanager
def get_db(read_only: bool = False):
    """
    Get the shared database connection with transaction handling.

    Args:
        read_only: If True, skip commit on exit (optimization for read operations)

    Handles nested calls correctly:
    - Only the outermost context commits/rollbacks
    - Inner contexts are no-ops for transaction control
    """
    global _transaction_depth
    with _conn_lock:
        conn = _get_connection()
        is_outermost = _transaction_depth == 0
        _transaction_depth += 1
        try:
            yield conn

            if is_outermost and not read_only:
                conn.commit()

        except Exception:
            if is_outermost:
                conn.rollback()
            raise

        finally:
            _transaction_depth -= 1


def close_db() -> None:
    """Close the shared connection. Call on application shutdown."""
    global _conn
    with _conn_lock:
        if _conn is not None:
            _conn.close()
            _conn = None
            logger.info("Database connection closed")


def init_db() -> None:
    try:
        with get_db() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS films (
                    film_id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    year INTEGER,
                    url TEXT NOT NULL,
                    rating REAL,
                    public_rating REAL,
                    runtime INTEGER,
                    added_at TEXT NOT NULL,
                    poster_url TEXT,
                    director TEXT,
                    "cast" TEXT,
                    writers TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_films_title ON films(title);
                CREATE INDEX IF NOT EXISTS idx_films_year ON films(year);
                CREATE INDEX IF NOT EXISTS idx_films_rating ON films(rating);
            """)
    except sqlite3.Error as e:
        raise StoreUnavailable(f"failed to create tables: {e}") from e


def _row_to_film(row: sqlite3.Row) -> Film:
    """Convert a films row to a Film, mapping NULLs back to domain defaults."""
    added_at = None
    if row["added_at"]:
        try:
            added_at = parse_timestamp_naive(row["added_at"])
        except ValueError:
            logger.warning(f"Unparsable added_at '{row['added_at']}' for {row['film_id']}")

    return Film(
        film_id=row["film_id"],
        title=row["title"],
        url=row["url"],
        year=row["year"] or 0,
        rating=row["rating"] or 0.0,
        public_rating=row["public_rating"] or 0.0,
        runtime=row["runtime"] or 0,
        added_at=added_at,
        poster_url=row["poster_url"] or "",
        director=row["director"] or "",
        cast=row["cast"] or "",
        writers=row["writers"] or "",
    )


def _query_films(sql: str, params: tuple = ()) -> list[Film]:
    try:
        with get_db(read_only=True) as conn:
            rows = conn.execute(sql, params).fetchall()
    except sqlite3.Error as e:
        raise StoreUnavailable(f"failed to query films: {e}") from e
    return [_row_to_film(row) for row in rows]


def film_exists(film_id: str) -> bool:
    """Check whether a film with this id is already stored."""
    try:
        with get_db(read_only=True) as conn:
            row = conn.execute("SELECT 1 FROM films WHERE film_id = ?", (film_id,)).fetchone()
    except sqlite3.Error as e:
        raise StoreUnavailable(f"failed to check if film exists: {e}") from e
    return row is not None


def add_film(film: Film) -> None:
    """
    Insert a new film, stamping added_at with the current time.

    Films are never updated once stored; inserting a known id raises
    ConstraintViolation and leaves the stored row as it was.
    """
    added_at = datetime.now()
    try:
        with get_db() as conn:
            conn.execute(f"""
                INSERT INTO films ({FILM_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                film.film_id, film.title, film.year, film.url,
                film.rating, film.public_rating, film.runtime, added_at.isoformat(),
                film.poster_url, film.director, film.cast, film.writers,
            ))
    except sqlite3.IntegrityError as e:
        raise ConstraintViolation(film.film_id) from e
    except (sqlite3.Error, OverflowError) as e:
        # OverflowError: a scraped integer too large for SQLite INTEGER
        raise StoreUnavailable(f"failed to insert film {film.film_id}: {e}") from e
    film.added_at = added_at


def load_all_films() -> list[Film]:
    """All films, most recently added first."""
    return _query_films(f"""
        SELECT {FILM_COLUMNS} FROM films
        ORDER BY added_at DESC, rowid DESC
    """)


def load_films_by_min_rating(min_rating: float) -> list[Film]:
    return _query_films(f"""
        SELECT {FILM_COLUMNS} FROM films
        WHERE rating >= ?
        ORDER BY rating DESC
    """, (min_rating,))


def load_films_by_year(year: int) -> list[Film]:
    return _query_films(f"""
        SELECT {FILM_COLUMNS} FROM films
        WHERE year = ?
        ORDER BY added_at DESC, rowid DESC
    """, (year,))


def search_films_by_title(query: str) -> list[Film]:
    """
    Case-insensitive substring search on title.

    LIKE wildcards in `query` are passed through unescaped.
    """
    return _query_films(f"""
        SELECT {FILM_COLUMNS} FROM films
        WHERE title LIKE ?
        ORDER BY title ASC
    """, (f"%{query}%",))


def count_films() -> int:
    try:
        with get_db(read_only=True) as conn:
            return conn.execute("SELECT COUNT(*) FROM films").fetchone()[0]
    except sqlite3.Error as e:
        raise StoreUnavailable(f"failed to count films: {e}") from e


def _top_people(conn: sqlite3.Connection, field: str, limit: int) -> list[PersonCount]:
    """Rank names in a comma-joined column by the number of films they appear in."""
    column = PEOPLE_COLUMNS[field]
    rows = conn.execute(f"SELECT {column} FROM films WHERE {column} IS NOT NULL AND {column} != ''")

    counts: Counter[str] = Counter()
    for (raw,) in rows:
        names = {name.strip() for name in raw.split(",") if name.strip()}
        counts.update(names)

    return [PersonCount(name, count) for name, count in counts.most_common(limit)]


def get_stats(top_n: int = STATS_TOP_N) -> CollectionStats:
    """Summarize the stored collection."""
    try:
        with get_db(read_only=True) as conn:
            total = conn.execute("SELECT COUNT(*) FROM films").fetchone()[0]
            avg_rating = conn.execute(
                "SELECT AVG(rating) FROM films WHERE rating > 0"
            ).fetchone()[0]
            avg_public = conn.execute(
                "SELECT AVG(public_rating) FROM films WHERE public_rating > 0"
            ).fetchone()[0]
            total_runtime = conn.execute(
                "SELECT COALESCE(SUM(runtime), 0) FROM films"
            ).fetchone()[0]

            by_year = [
                YearCount(row["year"], row["count"])
                for row in conn.execute("""
                    SELECT year, COUNT(*) AS count FROM films
                    WHERE year > 0
                    GROUP BY year
                    ORDER BY count DESC, year DESC
                    LIMIT ?
                """, (top_n,))
            ]

            top_directors = _top_people(conn, "director", top_n)
            top_actors = _top_people(conn, "cast", top_n)
            top_writers = _top_people(conn, "writers", top_n)
    except sqlite3.Error as e:
        raise StoreUnavailable(f"failed to compute stats: {e}") from e

    return CollectionStats(
        total_films=total,
        average_rating=avg_rating or 0.0,
        average_public_rating=avg_public or 0.0,
        total_runtime_minutes=total_runtime,
        films_by_year=by_year,
        top_films=_query_films(f"""
            SELECT {FILM_COLUMNS} FROM films
            ORDER BY rating DESC
            LIMIT ?
        """, (top_n,)),
        top_directors=top_directors,
        top_actors=top_actors,
        top_writers=top_writers,
    )
