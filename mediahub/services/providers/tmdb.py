"""TMDB API integration for movie and TV listings."""

import asyncio
from collections.abc import Callable
from typing import Any, TypedDict

from mediahub.config import get_settings
from mediahub.constants import (
    CACHE_NS_TMDB_GENRES,
    TMDB_API_BASE_URL,
    TMDB_IMAGE_BASE_URL,
    TMDB_LANGUAGE,
)
from mediahub.models.media import MediaType, ProviderType
from mediahub.services.providers.types import (
    NormalizedMediaItem,
    SearchPage,
    clean_string,
    unique_strings,
    year_from_date,
)
from mediahub.utils.cache import ProviderCache, get_provider_cache, make_cache_key
from mediahub.utils.http_client import ApiClient, ApiError
from mediahub.utils.logging import get_logger
from mediahub.utils.retry import RetryConfig

logger = get_logger(__name__)

MovieSearchParams = TypedDict(
    "MovieSearchParams",
    {
        "query": str,
        "page": int,
        "include_adult": bool,
        "region": str,
        "year": int,
        "primary_release_year": int,
        "with_genres": list[int] | str,
        "without_genres": list[int] | str,
        "with_original_language": str,
        "with_origin_country": str,
        "sort_by": str,
        "certification_country": str,
        "certification": str,
        "vote_average.gte": float,
        "vote_average.lte": float,
        "release_date.gte": str,
        "release_date.lte": str,
    },
    total=False,
)

TVSearchParams = TypedDict(
    "TVSearchParams",
    {
        "query": str,
        "page": int,
        "include_adult": bool,
        "first_air_date_year": int,
        "with_genres": list[int] | str,
        "without_genres": list[int] | str,
        "with_original_language": str,
        "with_origin_country": str,
        "sort_by": str,
        "vote_average.gte": float,
        "vote_average.lte": float,
        "first_air_date.gte": str,
        "first_air_date.lte": str,
    },
    total=False,
)

# TMDB expects genre filters as a comma-separated list
_COMMA_JOINED_PARAMS = ("with_genres", "without_genres")


def build_query(params: dict[str, Any]) -> dict[str, Any]:
    """Drop unset values and comma-join genre lists."""
    query: dict[str, Any] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if key in _COMMA_JOINED_PARAMS and isinstance(value, (list, tuple)):
            if not value:
                continue
            value = ",".join(str(v) for v in value)
        query[key] = value
    query.setdefault("language", TMDB_LANGUAGE)
    return query


def image_url(path: str | None) -> str | None:
    """Absolute image URL for a TMDB file path."""
    if not path:
        return None
    return f"{TMDB_IMAGE_BASE_URL}{path}"


class TMDBClient:
    """Client for TMDB listings, search and details.

    List endpoints return genre ids only. Names are resolved through a
    combined movie + TV genre map that is loaded on first need and kept in
    the provider cache.
    """

    def __init__(
        self,
        api: ApiClient | None = None,
        cache: ProviderCache | None = None,
        bearer_token: str | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        settings = get_settings()
        token = bearer_token if bearer_token is not None else settings.tmdb_bearer_token
        self.api = api or ApiClient(
            TMDB_API_BASE_URL,
            headers={"Authorization": f"Bearer {token}"},
            retry=retry or settings.retry_config,
        )
        self.cache = cache or get_provider_cache()
        self._genre_key = make_cache_key(CACHE_NS_TMDB_GENRES, TMDB_LANGUAGE)

    # ==================== Genres ====================

    async def _load_genre_map(self) -> dict[str, str]:
        """Get the id -> name map, fetching movie and TV genres together on a miss."""
        cached = await self.cache.get(self._genre_key)
        if cached is not None:
            return cached

        try:
            movie_genres, tv_genres = await asyncio.gather(
                self.get_movie_genres(), self.get_tv_genres()
            )
        except ApiError as e:
            # Listings still work, genre names just stay unresolved
            logger.error(f"Failed to load TMDB genres: {e}")
            return {}

        genre_map = {str(g["id"]): g["name"] for g in [*movie_genres, *tv_genres]}
        await self.cache.set(self._genre_key, genre_map)
        return genre_map

    async def invalidate_genres(self) -> None:
        """Drop the cached genre map so the next listing reloads it."""
        await self.cache.delete(self._genre_key)

    async def _genre_map_for(self, records: list[dict[str, Any]]) -> dict[str, str]:
        if any(not r.get("genres") and r.get("genre_ids") for r in records):
            return await self._load_genre_map()
        return {}

    @staticmethod
    def _resolve_genres(record: dict[str, Any], genre_map: dict[str, str]) -> list[str]:
        if record.get("genres"):
            return unique_strings(g.get("name") for g in record["genres"])
        return unique_strings(
            genre_map.get(str(gid), f"Unknown Genre {gid}") for gid in record.get("genre_ids") or []
        )

    async def get_movie_genres(self) -> list[dict[str, Any]]:
        data = await self.api.get("/genre/movie/list", params={"language": TMDB_LANGUAGE})
        return data.get("genres", [])

    async def get_tv_genres(self) -> list[dict[str, Any]]:
        data = await self.api.get("/genre/tv/list", params={"language": TMDB_LANGUAGE})
        return data.get("genres", [])

    # ==================== Normalization ====================

    def _transform_movie(
        self, movie: dict[str, Any], genre_map: dict[str, str]
    ) -> NormalizedMediaItem:
        title = clean_string(movie.get("title")) or clean_string(movie.get("original_title")) or ""
        original = clean_string(movie.get("original_title"))
        cover = image_url(movie.get("poster_path"))

        return NormalizedMediaItem(
            provider_id=str(movie["id"]),
            provider_type=ProviderType.TMDB,
            media_type=MediaType.MOVIE,
            title=title,
            alt_titles=[original] if original and original != title else [],
            synopsis=clean_string(movie.get("overview")),
            cover_image=cover,
            backdrop_image=image_url(movie.get("backdrop_path")) or cover,
            status=clean_string(movie.get("status")),
            genres=self._resolve_genres(movie, genre_map),
            countries=unique_strings(
                c.get("name") for c in movie.get("production_countries") or []
            ),
            languages=unique_strings(
                lang.get("english_name") for lang in movie.get("spoken_languages") or []
            ),
            score=movie.get("vote_average"),
            popularity=movie.get("popularity"),
            year=year_from_date(movie.get("release_date")),
            adult=bool(movie.get("adult")),
        )

    def _transform_tv(
        self, show: dict[str, Any], genre_map: dict[str, str]
    ) -> NormalizedMediaItem:
        title = clean_string(show.get("name")) or clean_string(show.get("original_name")) or ""
        original = clean_string(show.get("original_name"))
        cover = image_url(show.get("poster_path"))

        return NormalizedMediaItem(
            provider_id=str(show["id"]),
            provider_type=ProviderType.TMDB,
            media_type=MediaType.TV,
            title=title,
            alt_titles=[original] if original and original != title else [],
            synopsis=clean_string(show.get("overview")),
            cover_image=cover,
            backdrop_image=image_url(show.get("backdrop_path")) or cover,
            status=clean_string(show.get("status")),
            genres=self._resolve_genres(show, genre_map),
            countries=unique_strings(
                c.get("name") for c in show.get("production_countries") or []
            ),
            languages=unique_strings(
                lang.get("english_name") for lang in show.get("spoken_languages") or []
            ),
            score=show.get("vote_average"),
            popularity=show.get("popularity"),
            year=year_from_date(show.get("first_air_date")),
            adult=bool(show.get("adult")),
        )

    async def _fetch_list(
        self,
        endpoint: str,
        params: dict[str, Any],
        transform: Callable[[dict[str, Any], dict[str, str]], NormalizedMediaItem],
    ) -> tuple[list[NormalizedMediaItem], dict[str, Any]]:
        data = await self.api.get(endpoint, params=build_query(params))
        results = data.get("results", [])
        genre_map = await self._genre_map_for(results)
        return [transform(r, genre_map) for r in results], data

    async def _movies(self, endpoint: str, **params: Any) -> list[NormalizedMediaItem]:
        items, _ = await self._fetch_list(endpoint, params, self._transform_movie)
        return items

    async def _shows(self, endpoint: str, **params: Any) -> list[NormalizedMediaItem]:
        items, _ = await self._fetch_list(endpoint, params, self._transform_tv)
        return items

    # ==================== Movies ====================

    async def get_trending_movies(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self._movies("/trending/movie/week", page=page)

    async def get_popular_movies(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self._movies("/movie/popular", page=page)

    async def get_top_rated_movies(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self._movies("/movie/top_rated", page=page)

    async def get_upcoming_movies(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self._movies("/movie/upcoming", page=page)

    async def get_now_playing_movies(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self._movies("/movie/now_playing", page=page)

    async def get_movies_by_origin(
        self, country: str, language: str | None = None, page: int = 1
    ) -> list[NormalizedMediaItem]:
        """Discover popular movies by origin country and original language."""
        return await self._movies(
            "/discover/movie",
            page=page,
            with_origin_country=country,
            with_original_language=language,
            sort_by="popularity.desc",
        )

    async def get_bollywood_movies(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self.get_movies_by_origin("IN", "hi", page)

    async def get_hollywood_movies(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self.get_movies_by_origin("US", "en", page)

    async def get_movie_by_id(self, movie_id: int | str) -> NormalizedMediaItem:
        movie = await self.api.get(f"/movie/{movie_id}", params={"language": TMDB_LANGUAGE})
        return self._transform_movie(movie, await self._genre_map_for([movie]))

    # ==================== TV ====================

    async def get_trending_tv(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self._shows("/trending/tv/week", page=page)

    async def get_popular_tv(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self._shows("/tv/popular", page=page)

    async def get_top_rated_tv(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self._shows("/tv/top_rated", page=page)

    async def get_tv_by_origin(
        self, country: str, language: str | None = None, page: int = 1
    ) -> list[NormalizedMediaItem]:
        """Discover popular TV shows by origin country and original language."""
        return await self._shows(
            "/discover/tv",
            page=page,
            with_origin_country=country,
            with_original_language=language,
            sort_by="popularity.desc",
        )

    async def get_kdramas(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self.get_tv_by_origin("KR", "ko", page)

    async def get_cdramas(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self.get_tv_by_origin("CN", "zh", page)

    async def get_jdramas(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self.get_tv_by_origin("JP", "ja", page)

    async def get_thai_dramas(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self.get_tv_by_origin("TH", "th", page)

    async def get_indian_tv(self, page: int = 1) -> list[NormalizedMediaItem]:
        return await self.get_tv_by_origin("IN", "hi", page)

    async def get_tv_by_id(self, show_id: int | str) -> NormalizedMediaItem:
        show = await self.api.get(f"/tv/{show_id}", params={"language": TMDB_LANGUAGE})
        return self._transform_tv(show, await self._genre_map_for([show]))

    # ==================== Search ====================

    async def search_movies(self, params: MovieSearchParams) -> SearchPage:
        """Search by title when ``query`` is set, otherwise discover by filters."""
        endpoint = "/search/movie" if params.get("query") else "/discover/movie"
        items, data = await self._fetch_list(endpoint, dict(params), self._transform_movie)
        return self._page(items, data)

    async def search_tv(self, params: TVSearchParams) -> SearchPage:
        """Search by name when ``query`` is set, otherwise discover by filters."""
        endpoint = "/search/tv" if params.get("query") else "/discover/tv"
        items, data = await self._fetch_list(endpoint, dict(params), self._transform_tv)
        return self._page(items, data)

    @staticmethod
    def _page(items: list[NormalizedMediaItem], data: dict[str, Any]) -> SearchPage:
        page = data.get("page", 1)
        total_pages = data.get("total_pages")
        return SearchPage(
            items=items,
            page=page,
            total_pages=total_pages,
            total_results=data.get("total_results"),
            has_next_page=bool(total_pages and page < total_pages),
        )
