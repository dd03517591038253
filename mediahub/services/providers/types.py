"""Provider-independent media shape produced by every provider client."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from mediahub.models.media import MediaType, ProviderType


@dataclass
class AnimeDetails:
    """Anime-only fields carried next to the canonical item."""

    anime_type: str | None = None  # TV, Movie, OVA, ...
    episodes: int | None = None
    duration: str | None = None
    season: str | None = None
    airing: bool = False
    airing_from: str | None = None
    airing_to: str | None = None
    rating: str | None = None
    studios: list[str] = field(default_factory=list)


@dataclass
class MangaDetails:
    """Manga-only fields carried next to the canonical item."""

    last_chapter: str | None = None
    last_volume: str | None = None
    publication_demographic: str | None = None
    content_rating: str | None = None


@dataclass
class NormalizedMediaItem:
    """A single provider record mapped onto the internal schema.

    ``(provider_id, provider_type)`` identifies the canonical media row.
    """

    provider_id: str
    provider_type: ProviderType
    media_type: MediaType
    title: str
    alt_titles: list[str] = field(default_factory=list)
    synopsis: str | None = None
    cover_image: str | None = None
    backdrop_image: str | None = None
    status: str | None = None
    genres: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    countries: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    score: float | None = None
    popularity: float | None = None
    year: int | None = None
    adult: bool = False
    anime: AnimeDetails | None = None
    manga: MangaDetails | None = None


@dataclass
class SearchPage:
    """One page of search results."""

    items: list[NormalizedMediaItem]
    page: int
    total_pages: int | None = None
    total_results: int | None = None
    has_next_page: bool = False


def clean_string(value: object) -> str | None:
    """Strip a string, mapping empty results to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def unique_strings(values: Iterable[object] | None) -> list[str]:
    """Trim and deduplicate strings, keeping first-seen order."""
    if not values:
        return []
    seen: dict[str, None] = {}
    for value in values:
        text = clean_string(value)
        if text:
            seen.setdefault(text, None)
    return list(seen)


def year_from_date(value: str | None) -> int | None:
    """Year of an ISO date or datetime string, None if it cannot be read."""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10]).year
    except ValueError:
        return None
