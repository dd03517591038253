"""Provider clients for TMDB, Jikan and MangaDex.

Every client normalizes provider records into ``NormalizedMediaItem`` so the
sync pipeline never sees provider-specific shapes.

Usage:
    from mediahub.services.providers import JikanClient, TMDBClient

    tmdb = TMDBClient()
    movies = await tmdb.get_trending_movies()

    jikan = JikanClient()
    page = await jikan.search_anime({"q": "frieren"})
"""

from mediahub.services.providers.jikan import JikanClient, current_season, next_season
from mediahub.services.providers.mangadex import MangaDexClient, normalize_score
from mediahub.services.providers.tmdb import TMDBClient
from mediahub.services.providers.types import (
    AnimeDetails,
    MangaDetails,
    NormalizedMediaItem,
    SearchPage,
)

__all__ = [
    # Clients
    "TMDBClient",
    "JikanClient",
    "MangaDexClient",
    # Types
    "NormalizedMediaItem",
    "AnimeDetails",
    "MangaDetails",
    "SearchPage",
    # Helpers
    "current_season",
    "next_season",
    "normalize_score",
]
