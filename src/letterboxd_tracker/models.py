from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple


@dataclass
class Film:
    """
    One watched film, keyed by its Letterboxd slug.

    Built from a listing tile with title/url/rating, then filled in from the
    film's detail page. Name lists (director, cast, writers) are comma-joined.
    """
    film_id: str
    title: str
    url: str
    year: int = 0
    rating: float = 0.0
    public_rating: float = 0.0
    runtime: int = 0
    added_at: datetime | None = None
    poster_url: str = ""
    director: str = ""
    cast: str = ""
    writers: str = ""


class YearCount(NamedTuple):
    year: int
    count: int


class PersonCount(NamedTuple):
    name: str
    film_count: int


@dataclass(frozen=True)
class CollectionStats:
    total_films: int
    average_rating: float
    average_public_rating: float
    total_runtime_minutes: int
    films_by_year: list[YearCount] = field(default_factory=list)
    top_films: list[Film] = field(default_factory=list)
    top_directors: list[PersonCount] = field(default_factory=list)
    top_actors: list[PersonCount] = field(default_factory=list)
    top_writers: list[PersonCount] = field(default_factory=list)
