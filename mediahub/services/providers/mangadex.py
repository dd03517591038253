"""MangaDex API integration for manga, manhwa and manhua listings."""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, TypedDict

from mediahub.config import get_settings
from mediahub.constants import (
    CACHE_NS_MANGADEX_STATS,
    MANGADEX_ADULT_RATINGS,
    MANGADEX_API_BASE_URL,
    MANGADEX_COVER_BASE_URL,
    MANGADEX_LISTING_INCLUDES,
    MANGADEX_PAGE_SIZE,
    MANGADEX_RECENT_DAYS,
    MANGADEX_SAFE_RATINGS,
)
from mediahub.models.media import MediaType, ProviderType
from mediahub.services.providers.types import (
    MangaDetails,
    NormalizedMediaItem,
    SearchPage,
    clean_string,
    unique_strings,
)
from mediahub.utils.cache import ProviderCache, get_provider_cache, make_cache_key
from mediahub.utils.http_client import ApiClient, ApiError
from mediahub.utils.logging import get_logger
from mediahub.utils.retry import RetryConfig

logger = get_logger(__name__)

JAPANESE = ["ja"]
KOREAN = ["ko"]
CHINESE = ["zh", "zh-hk"]

TOP_RATED_DEMOGRAPHICS = ["shounen", "seinen", "shoujo", "josei"]
BY_FOLLOWS = {"followedCount": "desc"}

MangaList = list[NormalizedMediaItem]

# Sent as repeated ``key[]`` entries
_ARRAY_PARAMS = (
    "authors",
    "artists",
    "includedTags",
    "excludedTags",
    "status",
    "publicationDemographic",
    "contentRating",
    "includes",
    "originalLanguage",
)


class MangaSearchParams(TypedDict, total=False):
    """Query parameters accepted by ``/manga``."""

    limit: int
    offset: int
    title: str
    year: int
    authors: list[str]
    artists: list[str]
    includedTags: list[str]
    excludedTags: list[str]
    status: list[str]  # ongoing, completed, hiatus, cancelled
    publicationDemographic: list[str]
    contentRating: list[str]
    includes: list[str]
    originalLanguage: list[str]
    order: dict[str, str]  # field -> asc/desc
    hasAvailableChapters: bool
    createdAtSince: str


def build_query(params: MangaSearchParams | dict[str, Any]) -> list[tuple[str, Any]]:
    """Encode params the way MangaDex expects: ``key[]`` arrays, ``order[field]``."""
    query: list[tuple[str, Any]] = []
    for key, value in params.items():
        if value is None or value == "":
            continue
        if key == "order":
            query.extend((f"order[{field}]", direction) for field, direction in value.items())
        elif key in _ARRAY_PARAMS:
            query.extend((f"{key}[]", v) for v in value)
        else:
            query.append((key, value))
    return query


def normalize_score(value: Any) -> float | None:
    """Round a rating half up to two decimals, None when absent or not finite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return math.floor(value * 100 + 0.5) / 100


def _first_value(localized: dict[str, str] | None) -> str | None:
    if not localized:
        return None
    return clean_string(next(iter(localized.values()), None))


def _localized(localized: dict[str, str] | None) -> str | None:
    """English value of a localized map, else its first value."""
    if not localized:
        return None
    return clean_string(localized.get("en")) or _first_value(localized)


class MangaDexClient:
    """Client for MangaDex listings with ratings from the statistics endpoint.

    Listing responses carry no score, so every page is followed by one
    statistics call for the ids not already in the provider cache.
    """

    def __init__(
        self,
        api: ApiClient | None = None,
        cache: ProviderCache | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self.api = api or ApiClient(
            MANGADEX_API_BASE_URL, retry=retry or get_settings().retry_config
        )
        self.cache = cache or get_provider_cache()

    # ==================== Statistics ====================

    @staticmethod
    def _stats_key(manga_id: str) -> str:
        return make_cache_key(CACHE_NS_MANGADEX_STATS, manga_id)

    async def get_scores(self, manga_ids: list[str]) -> dict[str, float | None]:
        """Scores for the given ids, cached hits first, one request for the rest.

        A failed statistics request does not fail the listing: the pending
        ids are cached as unknown.
        """
        scores: dict[str, float | None] = {}
        pending: list[str] = []

        for manga_id in dict.fromkeys(manga_ids):
            cached = await self.cache.get(self._stats_key(manga_id))
            if cached is not None:
                scores[manga_id] = cached.get("score")
            else:
                pending.append(manga_id)

        if not pending:
            return scores

        try:
            if len(pending) == 1:
                data = await self.api.get(f"/statistics/manga/{pending[0]}")
            else:
                data = await self.api.get(
                    "/statistics/manga", params=[("manga[]", mid) for mid in pending]
                )
            statistics = data.get("statistics") or {}
        except ApiError as e:
            logger.warning(f"MangaDex statistics unavailable for {len(pending)} titles: {e}")
            statistics = {}

        for manga_id in pending:
            rating = (statistics.get(manga_id) or {}).get("rating") or {}
            raw = rating.get("bayesian")
            if raw is None:
                raw = rating.get("average")
            score = normalize_score(raw)
            await self.cache.set(self._stats_key(manga_id), {"score": score})
            scores[manga_id] = score

        return scores

    async def invalidate_scores(self) -> int:
        """Drop every cached statistics entry."""
        return await self.cache.clear(f"{CACHE_NS_MANGADEX_STATS}:")

    # ==================== Normalization ====================

    @staticmethod
    def _cover_image(manga: dict[str, Any]) -> str | None:
        for rel in manga.get("relationships") or []:
            if rel.get("type") == "cover_art":
                file_name = (rel.get("attributes") or {}).get("fileName")
                if file_name:
                    return f"{MANGADEX_COVER_BASE_URL}/{manga['id']}/{file_name}.512.jpg"
        return None

    def _transform_manga(self, manga: dict[str, Any], score: float | None) -> NormalizedMediaItem:
        attrs = manga.get("attributes") or {}
        titles = attrs.get("title") or {}
        title = _localized(titles) or "Unknown Title"

        alt_candidates = list(titles.values())
        for alt in attrs.get("altTitles") or []:
            alt_candidates.extend(alt.values())
        alt_titles = [t for t in unique_strings(alt_candidates) if t != title]

        genres: list[str] = []
        tags: list[str] = []
        for tag in attrs.get("tags") or []:
            tag_attrs = tag.get("attributes") or {}
            name = _localized(tag_attrs.get("name")) or "Unknown Tag"
            (genres if tag_attrs.get("group") == "genre" else tags).append(name)

        content_rating = clean_string(attrs.get("contentRating"))
        cover = self._cover_image(manga)

        return NormalizedMediaItem(
            provider_id=manga["id"],
            provider_type=ProviderType.MANGADEX,
            media_type=MediaType.MANGA,
            title=title,
            alt_titles=alt_titles,
            synopsis=_localized(attrs.get("description")),
            cover_image=cover,
            backdrop_image=cover,
            status=clean_string(attrs.get("status")),
            genres=unique_strings(genres),
            tags=unique_strings(tags),
            languages=unique_strings([attrs.get("originalLanguage")]),
            score=score,
            year=attrs.get("year"),
            adult=content_rating in MANGADEX_ADULT_RATINGS,
            manga=MangaDetails(
                last_chapter=clean_string(attrs.get("lastChapter")),
                last_volume=clean_string(attrs.get("lastVolume")),
                publication_demographic=clean_string(attrs.get("publicationDemographic")),
                content_rating=content_rating,
            ),
        )

    async def _fetch(self, params: dict[str, Any]) -> tuple[MangaList, dict[str, Any]]:
        data = await self.api.get("/manga", params=build_query(params))
        records = data.get("data", [])
        scores = await self.get_scores([m["id"] for m in records])
        return [self._transform_manga(m, scores.get(m["id"])) for m in records], data

    async def _listing(
        self,
        limit: int | None,
        offset: int,
        order: dict[str, str],
        **params: Any,
    ) -> MangaList:
        items, _ = await self._fetch(
            {
                "limit": limit or MANGADEX_PAGE_SIZE,
                "offset": offset,
                "order": order,
                "contentRating": MANGADEX_SAFE_RATINGS,
                "includes": MANGADEX_LISTING_INCLUDES,
                "hasAvailableChapters": True,
                **params,
            }
        )
        return items

    # ==================== Listings ====================

    async def get_popular_manga(self, limit: int | None = None, offset: int = 0) -> MangaList:
        return await self._listing(limit, offset, BY_FOLLOWS, originalLanguage=JAPANESE)

    async def get_popular_manhwa(self, limit: int | None = None, offset: int = 0) -> MangaList:
        return await self._listing(limit, offset, BY_FOLLOWS, originalLanguage=KOREAN)

    async def get_popular_manhua(self, limit: int | None = None, offset: int = 0) -> MangaList:
        return await self._listing(limit, offset, BY_FOLLOWS, originalLanguage=CHINESE)

    async def get_trending_manga(self, limit: int | None = None, offset: int = 0) -> MangaList:
        """Recently updated titles in every language."""
        return await self._listing(limit, offset, {"latestUploadedChapter": "desc"})

    async def get_top_rated_manga(self, limit: int | None = None, offset: int = 0) -> MangaList:
        # MangaDex cannot sort by rating, follows stand in for it
        return await self._listing(
            limit,
            offset,
            BY_FOLLOWS,
            originalLanguage=JAPANESE,
            publicationDemographic=TOP_RATED_DEMOGRAPHICS,
        )

    async def get_top_rated_manhwa(self, limit: int | None = None, offset: int = 0) -> MangaList:
        return await self._listing(limit, offset, BY_FOLLOWS, originalLanguage=KOREAN)

    async def get_top_rated_manhua(self, limit: int | None = None, offset: int = 0) -> MangaList:
        return await self._listing(limit, offset, BY_FOLLOWS, originalLanguage=CHINESE)

    async def get_recent_popular_by_language(
        self,
        language: str,
        limit: int | None = None,
        offset: int = 0,
        now: datetime | None = None,
    ) -> MangaList:
        """Most followed titles created in the last days, for ``ja``, ``ko`` or ``zh``."""
        since = (now or datetime.now(timezone.utc)) - timedelta(days=MANGADEX_RECENT_DAYS)
        return await self._listing(
            limit,
            offset,
            BY_FOLLOWS,
            originalLanguage=CHINESE if language == "zh" else [language],
            createdAtSince=since.strftime("%Y-%m-%dT%H:%M:%S"),
        )

    async def get_manga_by_id(self, manga_id: str) -> NormalizedMediaItem:
        data = await self.api.get(
            f"/manga/{manga_id}", params=build_query({"includes": MANGADEX_LISTING_INCLUDES})
        )
        scores = await self.get_scores([manga_id])
        return self._transform_manga(data["data"], scores.get(manga_id))

    async def get_tags(self) -> list[dict[str, Any]]:
        data = await self.api.get("/manga/tag")
        return data.get("data", [])

    # ==================== Search ====================

    async def search_manga(self, params: MangaSearchParams) -> SearchPage:
        query: dict[str, Any] = {
            "limit": MANGADEX_PAGE_SIZE,
            "offset": 0,
            "contentRating": MANGADEX_SAFE_RATINGS,
            "includes": [*MANGADEX_LISTING_INCLUDES, "author", "artist"],
            "hasAvailableChapters": True,
            **params,
        }
        items, data = await self._fetch(query)
        limit, offset = query["limit"], query["offset"]
        total = data.get("total", 0)
        return SearchPage(
            items=items,
            page=offset // limit + 1 if limit else 1,
            total_pages=-(-total // limit) if limit else None,
            total_results=total,
            has_next_page=offset + limit < total,
        )
