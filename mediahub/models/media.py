"""Canonical media rows, type-specific extensions and category membership."""

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mediahub.models.base import Base, TimestampMixin


class ProviderType(str, enum.Enum):
    """External content API a media row was synced from."""

    TMDB = "TMDB"
    JIKAN = "JIKAN"
    MANGADEX = "MANGADEX"

    @classmethod
    def parse(cls, value: "str | ProviderType") -> "ProviderType":
        """Resolve a raw provider name, including historical spellings.

        Raises:
            ValueError: For names that are not a known provider
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().upper()
        match name:
            case "TMDB":
                return cls.TMDB
            case "JIKAN":
                return cls.JIKAN
            case "MANGADEX" | "MANGADX":
                return cls.MANGADEX
        raise ValueError(f"Unsupported provider type: {value!r}")


class MediaType(str, enum.Enum):
    """Type of media."""

    MOVIE = "MOVIE"
    TV = "TV"
    ANIME = "ANIME"
    MANGA = "MANGA"

    @classmethod
    def parse(cls, value: "str | MediaType") -> "MediaType":
        """Resolve a raw media type name.

        Raises:
            ValueError: For names that are not a known media type
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().upper()
        match name:
            case "MOVIE":
                return cls.MOVIE
            case "TV":
                return cls.TV
            case "ANIME":
                return cls.ANIME
            case "MANGA":
                return cls.MANGA
        raise ValueError(f"Unsupported media type: {value!r}")


class Media(Base, TimestampMixin):
    """One row per (provider_id, provider_type), overwritten on every sync."""

    __tablename__ = "media"

    id: Mapped[int] = mapped_column(primary_key=True)
    provider_id: Mapped[str] = mapped_column(String(100), nullable=False)
    provider_type: Mapped[ProviderType] = mapped_column(Enum(ProviderType), nullable=False)
    type: Mapped[MediaType] = mapped_column(Enum(MediaType), nullable=False, index=True)

    # Descriptive
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    alt_titles: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    synopsis: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    backdrop_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Classification
    genres: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    countries: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    languages: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Metrics
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    popularity: Mapped[float | None] = mapped_column(Float, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    adult: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Type-specific metadata (one-to-one)
    anime_data: Mapped["AnimeData | None"] = relationship(
        "AnimeData", back_populates="media", uselist=False, cascade="all, delete-orphan"
    )
    manga_data: Mapped["MangaData | None"] = relationship(
        "MangaData", back_populates="media", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("provider_id", "provider_type", name="uq_media_provider"),
        Index("ix_media_type_score", "type", "score"),
    )

    def __repr__(self) -> str:
        return f"<Media(id={self.id}, title={self.title}, type={self.type})>"


class AnimeData(Base):
    """Anime-only fields, one row per anime media."""

    __tablename__ = "anime_data"

    id: Mapped[int] = mapped_column(primary_key=True)
    media_id: Mapped[int] = mapped_column(
        ForeignKey("media.id", ondelete="CASCADE"), unique=True, index=True
    )

    anime_type: Mapped[str | None] = mapped_column(String(50), nullable=True)  # TV, Movie, OVA...
    episodes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)
    season: Mapped[str | None] = mapped_column(String(20), nullable=True)
    airing: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    airing_from: Mapped[str | None] = mapped_column(String(50), nullable=True)
    airing_to: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rating: Mapped[str | None] = mapped_column(String(100), nullable=True)
    studios: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    media: Mapped["Media"] = relationship("Media", back_populates="anime_data")

    def __repr__(self) -> str:
        return f"<AnimeData(media_id={self.media_id})>"


class MangaData(Base):
    """Manga-only fields, one row per manga media."""

    __tablename__ = "manga_data"

    id: Mapped[int] = mapped_column(primary_key=True)
    media_id: Mapped[int] = mapped_column(
        ForeignKey("media.id", ondelete="CASCADE"), unique=True, index=True
    )

    last_chapter: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_volume: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rating: Mapped[str | None] = mapped_column(String(50), nullable=True)  # Content rating
    publication_demographic: Mapped[str | None] = mapped_column(String(50), nullable=True)

    media: Mapped["Media"] = relationship("Media", back_populates="manga_data")

    def __repr__(self) -> str:
        return f"<MangaData(media_id={self.media_id})>"


class MediaCategory(Base, TimestampMixin):
    """Membership of a media row in a ranked category snapshot."""

    __tablename__ = "media_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    media_id: Mapped[int] = mapped_column(
        ForeignKey("media.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_title: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_media_categories_title_position", "category_title", "position"),
    )

    def __repr__(self) -> str:
        return (
            f"<MediaCategory(category={self.category_title}, "
            f"position={self.position}, media_id={self.media_id})>"
        )
