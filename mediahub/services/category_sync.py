"""Category sync orchestrator.

Refreshes the ranked category snapshots (trending, popular, top rated,
dramas, upcoming) from TMDB, Jikan and MangaDex.

Each sync kind is a fixed, ordered list of ``CategoryFetch`` steps. A run:
1. Creates a job and fetches every step sequentially, each call gated by the
   provider's rate limiter
2. Truncates each list to the per-category cap
3. Replaces each category's membership in one transaction, skipping items
   that fail to persist
4. Completes the job, or marks it failed and reports the error

The public ``sync_*`` methods never raise; failures come back as
``SyncResult(success=False, ...)``.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.config import Settings, get_settings
from mediahub.models.media import MediaCategory
from mediahub.models.sync import SyncJobType
from mediahub.services.job_logger import JobLogger, JobStateError
from mediahub.services.media_upsert import MediaValidationError, insert_media
from mediahub.services.providers.jikan import JikanClient
from mediahub.services.providers.mangadex import MangaDexClient
from mediahub.services.providers.tmdb import TMDBClient
from mediahub.services.providers.types import NormalizedMediaItem
from mediahub.utils.logging import get_logger
from mediahub.utils.rate_limiter import RateLimiter, get_rate_limiter

logger = get_logger(__name__)

TMDB = "TMDB"
JIKAN = "JIKAN"
MANGADEX = "MANGADEX"


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    success: bool
    job_id: int | None
    error: str | None = None


@dataclass(frozen=True)
class CategoryFetch:
    """One provider call feeding one category."""

    category_title: str
    provider: str
    fetch: Callable[[], Awaitable[list[NormalizedMediaItem]]]


class CategorySyncService:
    """Rebuilds category snapshots from the providers.

    All writes go through the session passed in. Provider clients and the
    rate limiter default to the process-wide instances.
    """

    def __init__(
        self,
        db: AsyncSession,
        tmdb: TMDBClient | None = None,
        jikan: JikanClient | None = None,
        mangadex: MangaDexClient | None = None,
        limiter: RateLimiter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.tmdb = tmdb or TMDBClient()
        self.jikan = jikan or JikanClient()
        self.mangadex = mangadex or MangaDexClient()
        self.limiter = limiter or get_rate_limiter()
        self.settings = settings or get_settings()

    @property
    def items_per_category(self) -> int:
        return self.settings.sync_items_per_category

    # ==================== Sync kinds ====================

    def trending_steps(self) -> tuple[CategoryFetch, ...]:
        tmdb, jikan, dex, n = self.tmdb, self.jikan, self.mangadex, self.items_per_category
        return (
            CategoryFetch("trending_movies", TMDB, tmdb.get_trending_movies),
            CategoryFetch("trending_tv", TMDB, tmdb.get_trending_tv),
            CategoryFetch("trending_anime", JIKAN, lambda: jikan.get_trending_anime(limit=n)),
            CategoryFetch(
                "trending_anime_movies", JIKAN, lambda: jikan.get_popular_anime_movies(limit=n)
            ),
            CategoryFetch("trending_manga", MANGADEX, lambda: dex.get_trending_manga(limit=n)),
            CategoryFetch("trending_manhwa", MANGADEX, lambda: dex.get_popular_manhwa(limit=n)),
            CategoryFetch("trending_manhua", MANGADEX, lambda: dex.get_popular_manhua(limit=n)),
        )

    def popular_steps(self) -> tuple[CategoryFetch, ...]:
        tmdb, jikan, dex, n = self.tmdb, self.jikan, self.mangadex, self.items_per_category
        return (
            CategoryFetch("popular_movies", TMDB, tmdb.get_popular_movies),
            CategoryFetch("popular_tv", TMDB, tmdb.get_popular_tv),
            CategoryFetch("popular_anime", JIKAN, lambda: jikan.get_popular_anime(limit=n)),
            CategoryFetch(
                "popular_anime_movies", JIKAN, lambda: jikan.get_popular_anime_movies(limit=n)
            ),
            CategoryFetch("popular_manga", MANGADEX, lambda: dex.get_popular_manga(limit=n)),
            CategoryFetch("popular_manhwa", MANGADEX, lambda: dex.get_popular_manhwa(limit=n)),
            CategoryFetch("popular_manhua", MANGADEX, lambda: dex.get_popular_manhua(limit=n)),
        )

    def top_rated_steps(self) -> tuple[CategoryFetch, ...]:
        tmdb, jikan, dex, n = self.tmdb, self.jikan, self.mangadex, self.items_per_category
        return (
            CategoryFetch("top_rated_movies", TMDB, tmdb.get_top_rated_movies),
            CategoryFetch("top_rated_tv", TMDB, tmdb.get_top_rated_tv),
            CategoryFetch("top_rated_anime", JIKAN, lambda: jikan.get_top_anime(limit=n)),
            CategoryFetch(
                "top_rated_anime_movies",
                JIKAN,
                lambda: jikan.get_top_anime_by_type("movie", limit=n),
            ),
            CategoryFetch("current_season_anime", JIKAN, lambda: jikan.get_seasonal_anime(limit=n)),
            CategoryFetch("top_rated_manga", MANGADEX, lambda: dex.get_top_rated_manga(limit=n)),
            CategoryFetch("top_rated_manhwa", MANGADEX, lambda: dex.get_top_rated_manhwa(limit=n)),
            CategoryFetch("top_rated_manhua", MANGADEX, lambda: dex.get_top_rated_manhua(limit=n)),
        )

    def dramas_steps(self) -> tuple[CategoryFetch, ...]:
        return (
            CategoryFetch("popular_kdrama", TMDB, self.tmdb.get_kdramas),
            CategoryFetch("popular_cdrama", TMDB, self.tmdb.get_cdramas),
            CategoryFetch("popular_jdrama", TMDB, self.tmdb.get_jdramas),
            CategoryFetch("popular_thai_drama", TMDB, self.tmdb.get_thai_dramas),
            CategoryFetch("popular_indian_tv", TMDB, self.tmdb.get_indian_tv),
        )

    def upcoming_steps(self) -> tuple[CategoryFetch, ...]:
        tmdb, jikan, n = self.tmdb, self.jikan, self.items_per_category
        return (
            CategoryFetch("upcoming_movies", TMDB, tmdb.get_upcoming_movies),
            CategoryFetch("in_theaters_movies", TMDB, tmdb.get_now_playing_movies),
            CategoryFetch("upcoming_anime", JIKAN, lambda: jikan.get_upcoming_anime(limit=n)),
            CategoryFetch(
                "next_season_anime", JIKAN, lambda: jikan.get_next_season_anime(limit=n)
            ),
        )

    async def sync_trending(self) -> SyncResult:
        return await self._run(SyncJobType.TRENDING_SYNC, self.trending_steps())

    async def sync_popular(self) -> SyncResult:
        return await self._run(SyncJobType.POPULAR_SYNC, self.popular_steps())

    async def sync_top_rated(self) -> SyncResult:
        return await self._run(SyncJobType.TOP_RATED_SYNC, self.top_rated_steps())

    async def sync_dramas(self) -> SyncResult:
        return await self._run(SyncJobType.DRAMAS_SYNC, self.dramas_steps())

    async def sync_upcoming(self) -> SyncResult:
        return await self._run(SyncJobType.UPCOMING_SYNC, self.upcoming_steps())

    # ==================== Run ====================

    async def _run(self, job_type: SyncJobType, steps: tuple[CategoryFetch, ...]) -> SyncResult:
        label = job_type.value.removesuffix("_SYNC").lower().replace("_", " ")
        job: JobLogger | None = None

        try:
            job = await JobLogger.create_job(
                self.db, job_type, {"categories": [s.category_title for s in steps]}
            )
            await job.info(f"Starting {label} sync")

            fetched: list[tuple[str, list[NormalizedMediaItem]]] = []
            for step in steps:
                await self.limiter.check_rate_limit(step.provider)
                items = await step.fetch()
                await job.debug(
                    f"Fetched {len(items)} items for {step.category_title}",
                    {"provider": step.provider},
                )
                fetched.append((step.category_title, items[: self.items_per_category]))

            items_total = sum(len(items) for _, items in fetched)
            items_synced = 0
            for title, items in fetched:
                items_synced += await self.update_category(title, items, job)
                await job.update_progress(items_total, items_synced)
                await self.db.commit()

            await job.info(
                f"Completed {label} sync",
                {"items_total": items_total, "items_synced": items_synced},
            )
            await job.complete_job(True)
            logger.info(
                f"{job_type.value} job {job.job_id} synced {items_synced}/{items_total} items"
            )
            return SyncResult(success=True, job_id=job.job_id)

        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"{job_type.value} failed: {message}")
            await self.db.rollback()
            if job is None:
                return SyncResult(success=False, job_id=None, error=message)
            try:
                await job.error(f"{label.capitalize()} sync failed", {"error": message})
                await job.complete_job(False, message)
            except (SQLAlchemyError, JobStateError) as db_error:
                logger.error(f"Could not record failure of job {job.job_id}: {db_error}")
                await self.db.rollback()
            return SyncResult(success=False, job_id=job.job_id, error=message)

    async def update_category(
        self, title: str, items: list[NormalizedMediaItem], job: JobLogger
    ) -> int:
        """Replace the membership of ``title`` with ``items``, in order.

        The delete and the inserts commit together, or roll back together.
        Items that fail to persist are skipped and the survivors get
        contiguous positions starting at 1. Skipped items are logged once the
        category transaction has ended.

        Returns:
            Number of members written
        """
        skipped: list[tuple[NormalizedMediaItem, Exception]] = []
        try:
            written = await self._replace_members(title, items, skipped)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self._log_skipped(job, title, skipped)
            raise

        await self._log_skipped(job, title, skipped)
        await job.info(f"Updated {title} with {written} items", {"count": written})
        return written

    async def _replace_members(
        self,
        title: str,
        items: list[NormalizedMediaItem],
        skipped: list[tuple[NormalizedMediaItem, Exception]],
    ) -> int:
        await self.db.execute(
            delete(MediaCategory).where(MediaCategory.category_title == title)
        )

        members: list[MediaCategory] = []
        for item in items:
            try:
                media = await insert_media(self.db, item)
            except (MediaValidationError, SQLAlchemyError) as e:
                skipped.append((item, e))
                continue
            members.append(
                MediaCategory(media_id=media.id, category_title=title, position=len(members) + 1)
            )

        if members:
            self.db.add_all(members)
            await self.db.flush()
        return len(members)

    @staticmethod
    async def _log_skipped(
        job: JobLogger, title: str, skipped: list[tuple[NormalizedMediaItem, Exception]]
    ) -> None:
        for item, error in skipped:
            await job.warn(
                f"Skipped item in {title}: {error}",
                {"error": str(error), "provider_id": item.provider_id, "title": item.title},
            )
