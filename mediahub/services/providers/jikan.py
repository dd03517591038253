"""Jikan (MyAnimeList) API integration for anime listings.

Jikan is a free public API with strict limits, callers are expected to go
through the rate limiter before every request.
"""

from datetime import date
from typing import Any, Literal, TypedDict

from mediahub.config import get_settings
from mediahub.constants import JIKAN_API_BASE_URL, JIKAN_PAGE_SIZE, JIKAN_TRENDING_MIN_SCORE
from mediahub.models.media import MediaType, ProviderType
from mediahub.services.providers.types import (
    AnimeDetails,
    NormalizedMediaItem,
    SearchPage,
    clean_string,
    unique_strings,
    year_from_date,
)
from mediahub.utils.http_client import ApiClient
from mediahub.utils.retry import RetryConfig

Season = Literal["winter", "spring", "summer", "fall"]

SEASON_ORDER: tuple[Season, ...] = ("winter", "spring", "summer", "fall")

# Fixed quarter boundaries by calendar month
_SEASON_BY_MONTH: dict[int, Season] = {
    2: "spring", 3: "spring", 4: "spring",
    5: "summer", 6: "summer", 7: "summer",
    8: "fall", 9: "fall", 10: "fall",
    11: "winter", 12: "winter", 1: "winter",
}


class AnimeSearchParams(TypedDict, total=False):
    """Query parameters accepted by ``/anime``."""

    q: str
    page: int
    limit: int
    type: str  # tv, movie, ova, special, ona, music, cm, pv, tv_special
    score: float
    min_score: float
    max_score: float
    status: str  # airing, complete, upcoming
    rating: str  # g, pg, pg13, r17, r, rx
    sfw: bool
    genres: str
    genres_exclude: str
    order_by: str
    sort: str
    letter: str
    producers: str
    start_date: str
    end_date: str
    unapproved: bool


def current_season(today: date | None = None) -> tuple[int, Season]:
    """Season containing ``today`` as ``(year, season)``.

    A winter that starts in November or December is filed under the
    following year, the year in which most of it falls.
    """
    today = today or date.today()
    season = _SEASON_BY_MONTH[today.month]
    year = today.year + 1 if season == "winter" and today.month >= 11 else today.year
    return year, season


def next_season(today: date | None = None) -> tuple[int, Season]:
    """Season after the current one, rolling over to the next year after fall."""
    year, season = current_season(today)
    index = SEASON_ORDER.index(season) + 1
    if index == len(SEASON_ORDER):
        return year + 1, SEASON_ORDER[0]
    return year, SEASON_ORDER[index]


def build_query(params: AnimeSearchParams | dict[str, Any]) -> dict[str, Any]:
    """Drop unset values. ``unapproved`` is a flag sent only when true."""
    query = {k: v for k, v in params.items() if v is not None and v != ""}
    if not query.get("unapproved"):
        query.pop("unapproved", None)
    return query


class JikanClient:
    """Client for Jikan anime listings, search and details."""

    def __init__(self, api: ApiClient | None = None, retry: RetryConfig | None = None) -> None:
        self.api = api or ApiClient(
            JIKAN_API_BASE_URL, retry=retry or get_settings().retry_config
        )

    # ==================== Normalization ====================

    @staticmethod
    def _transform_anime(anime: dict[str, Any]) -> NormalizedMediaItem:
        default_title = clean_string(anime.get("title"))
        title = clean_string(anime.get("title_english")) or default_title or ""

        alt_candidates = [
            default_title,
            anime.get("title_japanese"),
            *(anime.get("title_synonyms") or []),
            *(t.get("title") for t in anime.get("titles") or []),
        ]
        alt_titles = [t for t in unique_strings(alt_candidates) if t != title]

        tags = unique_strings(
            [t.get("name") for t in anime.get("themes") or []]
            + [d.get("name") for d in anime.get("demographics") or []]
        )

        rating = clean_string(anime.get("rating"))
        adult = bool(rating and ("R+" in rating or "Rx" in rating))

        images = anime.get("images") or {}
        cover = clean_string(
            (images.get("jpg") or {}).get("large_image_url")
            or (images.get("webp") or {}).get("large_image_url")
        )

        aired = anime.get("aired") or {}

        return NormalizedMediaItem(
            provider_id=str(anime["mal_id"]),
            provider_type=ProviderType.JIKAN,
            media_type=MediaType.ANIME,
            title=title,
            alt_titles=alt_titles,
            synopsis=clean_string(anime.get("synopsis")),
            cover_image=cover,
            backdrop_image=cover,  # Jikan has no backdrops
            status=clean_string(anime.get("status")),
            genres=unique_strings(g.get("name") for g in anime.get("genres") or []),
            tags=tags,
            score=anime.get("score"),
            popularity=anime.get("popularity"),
            year=anime.get("year") or year_from_date(aired.get("from")),
            adult=adult,
            anime=AnimeDetails(
                anime_type=clean_string(anime.get("type")),
                episodes=anime.get("episodes"),
                duration=clean_string(anime.get("duration")),
                season=clean_string(anime.get("season")),
                airing=bool(anime.get("airing")),
                airing_from=clean_string(aired.get("from")),
                airing_to=clean_string(aired.get("to")),
                rating=rating,
                studios=unique_strings(s.get("name") for s in anime.get("studios") or []),
            ),
        )

    async def _fetch(self, endpoint: str, params: dict[str, Any]) -> list[NormalizedMediaItem]:
        data = await self.api.get(endpoint, params=build_query(params))
        return [self._transform_anime(a) for a in data.get("data", [])]

    async def _search_listing(
        self, page: int, limit: int | None, **params: Any
    ) -> list[NormalizedMediaItem]:
        return await self._fetch(
            "/anime", {"limit": limit or JIKAN_PAGE_SIZE, "page": page, "sfw": True, **params}
        )

    # ==================== Listings ====================

    async def get_top_anime(
        self,
        page: int = 1,
        limit: int | None = None,
        type: str | None = None,
        filter: str | None = None,
    ) -> list[NormalizedMediaItem]:
        return await self._fetch(
            "/top/anime", {"page": page, "limit": limit, "type": type, "filter": filter}
        )

    async def get_top_anime_by_type(
        self, anime_type: str, page: int = 1, limit: int | None = None
    ) -> list[NormalizedMediaItem]:
        return await self.get_top_anime(page=page, limit=limit, type=anime_type)

    async def get_popular_anime(
        self, page: int = 1, limit: int | None = None
    ) -> list[NormalizedMediaItem]:
        # Lower popularity number means more popular
        return await self._search_listing(page, limit, order_by="popularity", sort="asc")

    async def get_trending_anime(
        self, page: int = 1, limit: int | None = None
    ) -> list[NormalizedMediaItem]:
        return await self._search_listing(
            page, limit, status="airing", order_by="members", sort="desc"
        )

    async def get_popular_anime_movies(
        self, page: int = 1, limit: int | None = None
    ) -> list[NormalizedMediaItem]:
        return await self._search_listing(
            page, limit, type="movie", order_by="popularity", sort="asc"
        )

    async def get_trending_by_score(
        self, page: int = 1, limit: int | None = None
    ) -> list[NormalizedMediaItem]:
        return await self._search_listing(
            page,
            limit,
            status="airing",
            min_score=JIKAN_TRENDING_MIN_SCORE,
            order_by="score",
            sort="desc",
        )

    async def get_upcoming_anime(
        self, page: int = 1, limit: int | None = None
    ) -> list[NormalizedMediaItem]:
        return await self._search_listing(
            page, limit, status="upcoming", order_by="members", sort="desc"
        )

    async def get_anime_by_genre(
        self, genre_id: int, page: int = 1, limit: int | None = None
    ) -> list[NormalizedMediaItem]:
        return await self._search_listing(
            page, limit, genres=str(genre_id), order_by="score", sort="desc"
        )

    async def get_seasonal_anime(
        self,
        year: int | None = None,
        season: Season | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> list[NormalizedMediaItem]:
        """Anime of a season, the current one when not specified."""
        if year is None or season is None:
            current_year, current = current_season()
            year = year or current_year
            season = season or current
        return await self._fetch(f"/seasons/{year}/{season}", {"page": page, "limit": limit})

    async def get_next_season_anime(
        self, page: int = 1, limit: int | None = None
    ) -> list[NormalizedMediaItem]:
        year, season = next_season()
        return await self.get_seasonal_anime(year, season, page=page, limit=limit)

    async def get_random_anime(self) -> NormalizedMediaItem:
        data = await self.api.get("/random/anime")
        return self._transform_anime(data["data"])

    async def get_anime_by_id(self, anime_id: int | str) -> NormalizedMediaItem:
        data = await self.api.get(f"/anime/{anime_id}")
        return self._transform_anime(data["data"])

    async def get_genres(self) -> list[dict[str, Any]]:
        data = await self.api.get("/genres/anime")
        return data.get("data", [])

    # ==================== Search ====================

    async def search_anime(self, params: AnimeSearchParams) -> SearchPage:
        query: dict[str, Any] = {"limit": JIKAN_PAGE_SIZE, "page": 1, "sfw": True, **params}
        data = await self.api.get("/anime", params=build_query(query))
        pagination = data.get("pagination") or {}
        return SearchPage(
            items=[self._transform_anime(a) for a in data.get("data", [])],
            page=pagination.get("current_page", query["page"]),
            total_pages=pagination.get("last_visible_page"),
            total_results=(pagination.get("items") or {}).get("total"),
            has_next_page=bool(pagination.get("has_next_page")),
        )
