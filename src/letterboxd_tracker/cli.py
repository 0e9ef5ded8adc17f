import argparse
import logging
import atexit
import re
import sys

from .database import (
    init_db, close_db, load_all_films, load_films_by_min_rating,
    load_films_by_year, search_films_by_title, get_stats,
)
from .config import DEFAULT_SCRAPER_DELAY
from .errors import FetchFailed, PartialFailure
from .models import Film
from .sync import sync_user

logger = logging.getLogger(__name__)

# Register cleanup on exit
atexit.register(close_db)


def _validate_username(username: str) -> str:
    """
    Sanitize a Letterboxd username.
    Returns lowercased alphanumeric + underscores/hyphens only.
    """
    sanitized = re.sub(r'[^a-z0-9_-]', '', username.lower())
    if sanitized != username.lower():
        logger.warning(f"Username '{username}' sanitized to '{sanitized}'")
    return sanitized


def _format_film(film: Film) -> str:
    year = f" ({film.year})" if film.year else ""
    rating = f"  {film.rating:.1f}/5" if film.rating else ""
    director = f"  dir. {film.director}" if film.director else ""
    return f"{film.title}{year}{rating}{director}"


def _print_films(films: list[Film]) -> None:
    if not films:
        logger.info("No films found.")
        return
    for film in films:
        print(_format_film(film))


def cmd_sync(args: argparse.Namespace) -> int:
    """Scrape a user's watched films into the local database."""
    init_db()
    username = _validate_username(args.username)
    if not username:
        logger.error(f"Invalid username: '{args.username}'")
        return 1

    try:
        report = sync_user(username, delay=args.delay, show_progress=True)
    except FetchFailed as e:
        logger.error(f"Could not read {username}'s films: {e}")
        return 1
    except PartialFailure as e:
        logger.error(f"Sync finished with errors: {e.report.summary() if e.report else e}")
        return 1

    logger.info(f"Sync finished: {report.summary()}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List stored films, optionally filtered by year or minimum rating."""
    init_db()
    if args.year is not None:
        films = load_films_by_year(args.year)
    elif args.min_rating is not None:
        films = load_films_by_min_rating(args.min_rating)
    else:
        films = load_all_films()
    _print_films(films)
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    """Search stored films by title."""
    init_db()
    _print_films(search_films_by_title(args.query))
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show collection statistics."""
    init_db()
    stats = get_stats()

    logger.info(f"\nCollection Statistics:")
    logger.info(f"  Films: {stats.total_films}")
    logger.info(f"  Average rating: {stats.average_rating:.2f}")
    logger.info(f"  Average Letterboxd rating: {stats.average_public_rating:.2f}")
    logger.info(f"  Total runtime: {stats.total_runtime_minutes} minutes")

    if stats.films_by_year:
        logger.info(f"\nTop years:")
        for year, count in stats.films_by_year:
            logger.info(f"  {year}: {count} films")

    for label, people in (
        ("directors", stats.top_directors),
        ("actors", stats.top_actors),
        ("writers", stats.top_writers),
    ):
        if people:
            logger.info(f"\nTop {label}:")
            for name, count in people:
                logger.info(f"  {name}: {count} films")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Letterboxd Tracker")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Scrape a user's watched films")
    sync_parser.add_argument("username", help="Letterboxd username")
    sync_parser.add_argument("--delay", type=float, default=DEFAULT_SCRAPER_DELAY,
                             help="Seconds to wait between requests")
    sync_parser.set_defaults(func=cmd_sync)

    list_parser = subparsers.add_parser("list", help="List stored films")
    filters = list_parser.add_mutually_exclusive_group()
    filters.add_argument("--year", type=int, help="Only films released in this year")
    filters.add_argument("--min-rating", type=float, help="Only films rated at least this")
    list_parser.set_defaults(func=cmd_list)

    search_parser = subparsers.add_parser("search", help="Search stored films by title")
    search_parser.add_argument("query", help="Substring to look for")
    search_parser.set_defaults(func=cmd_search)

    stats_parser = subparsers.add_parser("stats", help="Show collection statistics")
    stats_parser.set_defaults(func=cmd_stats)

    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
