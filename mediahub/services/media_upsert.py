"""Idempotent write of a normalized provider item into the canonical tables.

A media row is keyed by ``(provider_id, provider_type)``. Re-syncing the same
item updates it in place: list fields are replaced wholesale, optional
scalars are only overwritten when the provider sent a value.
"""

from dataclasses import fields
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mediahub.models.media import AnimeData, MangaData, Media, MediaType, ProviderType
from mediahub.services.providers.types import (
    AnimeDetails,
    MangaDetails,
    NormalizedMediaItem,
    unique_strings,
)
from mediahub.utils.logging import get_logger

logger = get_logger(__name__)

_LIST_FIELDS = ("alt_titles", "genres", "tags", "countries", "languages")
_OPTIONAL_FIELDS = (
    "synopsis",
    "cover_image",
    "backdrop_image",
    "status",
    "score",
    "popularity",
    "year",
)


class MediaValidationError(ValueError):
    """Raised when an item cannot be stored (missing key, unknown type)."""


def _validate(item: NormalizedMediaItem) -> tuple[ProviderType, MediaType]:
    if not item.title or not item.title.strip():
        raise MediaValidationError(f"Media {item.provider_id!r} has no title")
    if not item.provider_id or not str(item.provider_id).strip():
        raise MediaValidationError(f"Media {item.title!r} has no provider id")
    try:
        return ProviderType.parse(item.provider_type), MediaType.parse(item.media_type)
    except ValueError as e:
        raise MediaValidationError(str(e)) from e


def _apply(target: Any, values: dict[str, Any], list_fields: tuple[str, ...]) -> None:
    """Copy ``values`` onto ``target``: lists always, scalars only when set."""
    for key, value in values.items():
        if key in list_fields:
            setattr(target, key, unique_strings(value))
        elif value is not None:
            setattr(target, key, value)


def _anime_values(details: AnimeDetails) -> dict[str, Any]:
    return {f.name: getattr(details, f.name) for f in fields(details)}


def _manga_values(details: MangaDetails) -> dict[str, Any]:
    return {
        "last_chapter": details.last_chapter,
        "last_volume": details.last_volume,
        "publication_demographic": details.publication_demographic,
        "rating": details.content_rating,
    }


async def _find(db: AsyncSession, provider_id: str, provider_type: ProviderType) -> Media | None:
    query = (
        select(Media)
        .where(Media.provider_id == provider_id, Media.provider_type == provider_type)
        .options(selectinload(Media.anime_data), selectinload(Media.manga_data))
    )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def insert_media(db: AsyncSession, item: NormalizedMediaItem) -> Media:
    """Create or update the media row for ``item`` and its extension row.

    Runs in a savepoint when the session already has a transaction open, so
    a failure only discards this item. Otherwise it opens and commits its
    own transaction.

    Raises:
        MediaValidationError: If the item is missing its title or key
        SQLAlchemyError: If the write fails
    """
    provider_type, media_type = _validate(item)
    provider_id = str(item.provider_id).strip()

    transaction = db.begin_nested() if db.in_transaction() else db.begin()
    async with transaction:
        media = await _find(db, provider_id, provider_type)
        if media is None:
            media = Media(
                provider_id=provider_id,
                provider_type=provider_type,
                anime_data=None,
                manga_data=None,
            )
            db.add(media)

        media.type = media_type
        media.title = item.title.strip()
        media.adult = bool(item.adult)
        _apply(
            media,
            {
                **{k: getattr(item, k) for k in _LIST_FIELDS},
                **{k: getattr(item, k) for k in _OPTIONAL_FIELDS},
            },
            _LIST_FIELDS,
        )

        # Extension rows follow the media type, details of another type are ignored
        match media_type:
            case MediaType.ANIME if item.anime is not None:
                if media.anime_data is None:
                    media.anime_data = AnimeData()
                media.anime_data.airing = bool(item.anime.airing)
                values = _anime_values(item.anime)
                values.pop("airing")
                _apply(media.anime_data, values, ("studios",))
            case MediaType.MANGA if item.manga is not None:
                if media.manga_data is None:
                    media.manga_data = MangaData()
                _apply(media.manga_data, _manga_values(item.manga), ())
            case _:
                pass

        await db.flush()

    logger.debug(f"Upserted {provider_type.value}:{provider_id} as media {media.id}")
    return media
