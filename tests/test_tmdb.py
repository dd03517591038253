"""Tests for the TMDB client."""

from datetime import timedelta

import httpx
import pytest

from mediahub.constants import TMDB_API_BASE_URL
from mediahub.models.media import MediaType, ProviderType
from mediahub.services.providers.tmdb import TMDBClient, build_query
from mediahub.utils.cache import MemoryCache
from mediahub.utils.http_client import ApiClient, ApiError
from mediahub.utils.retry import RetryConfig

MOVIE_GENRES = {"genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}]}
TV_GENRES = {"genres": [{"id": 18, "name": "Drama"}]}

DUNE = {
    "id": 693134,
    "title": "Dune: Part Two",
    "original_title": "Dune: Part Two",
    "overview": "Paul Atreides unites with the Fremen.",
    "poster_path": "/poster.jpg",
    "backdrop_path": None,
    "genre_ids": [878, 28],
    "release_date": "2024-02-27",
    "vote_average": 8.2,
    "popularity": 512.3,
    "adult": False,
}

PARASITE = {
    "id": 496243,
    "title": "Parasite",
    "original_title": "기생충",
    "poster_path": "/parasite.jpg",
    "backdrop_path": "/parasite-bg.jpg",
    "genre_ids": [18, 12345],
    "release_date": "",
    "vote_average": 8.5,
}

CRASH_LANDING = {
    "id": 94796,
    "name": "Crash Landing on You",
    "original_name": "사랑의 불시착",
    "poster_path": "/cloy.jpg",
    "genre_ids": [18],
    "first_air_date": "2019-12-14",
    "vote_average": 8.7,
}


class FakeTMDB:
    """Routes requests to canned payloads and records them."""

    def __init__(self, genres_status: int = 200) -> None:
        self.requests: list[httpx.Request] = []
        self.genres_status = genres_status

    def paths(self) -> list[str]:
        return [r.url.path.removeprefix("/3") for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/3")
        if path.startswith("/genre/"):
            if self.genres_status != 200:
                return httpx.Response(self.genres_status)
            return httpx.Response(200, json=MOVIE_GENRES if "movie" in path else TV_GENRES)
        if path in ("/trending/movie/week", "/search/movie", "/discover/movie"):
            return httpx.Response(
                200,
                json={
                    "page": 1,
                    "total_pages": 3,
                    "total_results": 42,
                    "results": [DUNE, PARASITE],
                },
            )
        if path == "/discover/tv":
            return httpx.Response(
                200, json={"page": 1, "total_pages": 1, "results": [CRASH_LANDING]}
            )
        if path == "/movie/693134":
            return httpx.Response(200, json={**DUNE, "genres": [{"id": 878, "name": "Sci-Fi"}]})
        return httpx.Response(404)


@pytest.fixture
def fake_api() -> FakeTMDB:
    return FakeTMDB()


def make_tmdb(handler, cache: MemoryCache | None = None) -> TMDBClient:
    api = ApiClient(
        TMDB_API_BASE_URL,
        headers={"Authorization": "Bearer test"},
        retry=RetryConfig(attempts=0),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return TMDBClient(api=api, cache=cache or MemoryCache(ttl=timedelta(hours=1)))


class TestBuildQuery:
    """Tests for TMDB query construction."""

    def test_defaults_language_and_drops_unset(self):
        assert build_query({"page": 1, "region": None, "query": ""}) == {
            "page": 1,
            "language": "en-US",
        }

    def test_joins_genre_lists(self):
        query = build_query({"with_genres": [28, 12], "without_genres": []})
        assert query["with_genres"] == "28,12"
        assert "without_genres" not in query


class TestNormalization:
    """Tests for movie and TV normalization."""

    @pytest.mark.asyncio
    async def test_trending_movie_fields(self, fake_api: FakeTMDB):
        """Test a listing record maps onto the canonical item."""
        tmdb = make_tmdb(fake_api)

        dune, parasite = await tmdb.get_trending_movies()

        assert dune.provider_id == "693134"
        assert dune.provider_type == ProviderType.TMDB
        assert dune.media_type == MediaType.MOVIE
        assert dune.title == "Dune: Part Two"
        assert dune.alt_titles == []
        assert dune.genres == ["Science Fiction", "Action"]
        assert dune.cover_image == "https://image.tmdb.org/t/p/w500/poster.jpg"
        # Falls back to the poster when there is no backdrop
        assert dune.backdrop_image == dune.cover_image
        assert dune.year == 2024
        assert dune.score == 8.2
        assert dune.adult is False

        assert parasite.alt_titles == ["기생충"]
        assert parasite.year is None
        assert parasite.backdrop_image == "https://image.tmdb.org/t/p/w500/parasite-bg.jpg"

    @pytest.mark.asyncio
    async def test_unknown_genre_id_gets_placeholder(self, fake_api: FakeTMDB):
        tmdb = make_tmdb(fake_api)

        _, parasite = await tmdb.get_trending_movies()

        assert parasite.genres == ["Drama", "Unknown Genre 12345"]

    @pytest.mark.asyncio
    async def test_kdrama_discovery(self, fake_api: FakeTMDB):
        """Test K-dramas are discovered by Korean origin and language."""
        tmdb = make_tmdb(fake_api)

        [show] = await tmdb.get_kdramas()

        request = next(r for r in fake_api.requests if r.url.path.endswith("/discover/tv"))
        assert request.url.params["with_origin_country"] == "KR"
        assert request.url.params["with_original_language"] == "ko"
        assert request.url.params["sort_by"] == "popularity.desc"
        assert show.media_type == MediaType.TV
        assert show.title == "Crash Landing on You"
        assert show.alt_titles == ["사랑의 불시착"]
        assert show.year == 2019
        assert show.genres == ["Drama"]


class TestGenreMap:
    """Tests for the lazily loaded genre map."""

    @pytest.mark.asyncio
    async def test_loaded_once_and_cached(self, fake_api: FakeTMDB):
        """Test both genre lists are fetched once across several listings."""
        tmdb = make_tmdb(fake_api)

        await tmdb.get_trending_movies()
        await tmdb.get_trending_movies()

        genre_calls = [p for p in fake_api.paths() if p.startswith("/genre/")]
        assert sorted(genre_calls) == ["/genre/movie/list", "/genre/tv/list"]

    @pytest.mark.asyncio
    async def test_not_loaded_when_genres_are_inline(self, fake_api: FakeTMDB):
        tmdb = make_tmdb(fake_api)

        movie = await tmdb.get_movie_by_id(693134)

        assert movie.genres == ["Sci-Fi"]
        assert not any(p.startswith("/genre/") for p in fake_api.paths())

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(self, fake_api: FakeTMDB):
        tmdb = make_tmdb(fake_api)

        await tmdb.get_trending_movies()
        await tmdb.invalidate_genres()
        await tmdb.get_trending_movies()

        genre_calls = [p for p in fake_api.paths() if p.startswith("/genre/")]
        assert len(genre_calls) == 4

    @pytest.mark.asyncio
    async def test_genre_failure_degrades_and_is_not_cached(self):
        """Test listings survive a genre outage and retry the map next time."""
        fake_api = FakeTMDB(genres_status=500)
        cache = MemoryCache(ttl=timedelta(hours=1))
        tmdb = make_tmdb(fake_api, cache)

        dune, _ = await tmdb.get_trending_movies()

        assert dune.genres == ["Unknown Genre 878", "Unknown Genre 28"]
        assert await cache.get(tmdb._genre_key) is None


class TestSearch:
    """Tests for search and discovery."""

    @pytest.mark.asyncio
    async def test_search_with_query(self, fake_api: FakeTMDB):
        tmdb = make_tmdb(fake_api)

        page = await tmdb.search_movies({"query": "dune", "page": 1})

        assert "/search/movie" in fake_api.paths()
        assert page.page == 1
        assert page.total_pages == 3
        assert page.total_results == 42
        assert page.has_next_page is True
        assert [i.title for i in page.items] == ["Dune: Part Two", "Parasite"]

    @pytest.mark.asyncio
    async def test_discover_without_query(self, fake_api: FakeTMDB):
        """Test filter-only searches go to discover with joined genres."""
        tmdb = make_tmdb(fake_api)

        await tmdb.search_movies({"with_genres": [28, 878], "vote_average.gte": 7})

        request = next(r for r in fake_api.requests if r.url.path.endswith("/discover/movie"))
        assert request.url.params["with_genres"] == "28,878"
        assert request.url.params["vote_average.gte"] == "7"

    @pytest.mark.asyncio
    async def test_listing_errors_propagate(self):
        tmdb = make_tmdb(lambda request: httpx.Response(503))

        with pytest.raises(ApiError):
            await tmdb.get_popular_movies()
