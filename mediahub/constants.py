"""Application constants - centralized configuration values."""

# =============================================================================
# API Timeouts (in seconds)
# =============================================================================
HTTP_ATTEMPT_TIMEOUT = 10.0  # Per attempt, retries get a fresh budget

# Connection pool shared by every provider client
HTTP_MAX_CONNECTIONS = 20
HTTP_MAX_KEEPALIVE_CONNECTIONS = 10
HTTP_KEEPALIVE_EXPIRY = 30

# =============================================================================
# External API URLs
# =============================================================================
TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"
JIKAN_API_BASE_URL = "https://api.jikan.moe/v4"
MANGADEX_API_BASE_URL = "https://api.mangadex.org"
MANGADEX_COVER_BASE_URL = "https://uploads.mangadex.org/covers"

# =============================================================================
# Provider defaults
# =============================================================================
TMDB_LANGUAGE = "en-US"
JIKAN_PAGE_SIZE = 25
MANGADEX_PAGE_SIZE = 20
MANGADEX_SAFE_RATINGS = ["safe", "suggestive"]
MANGADEX_ADULT_RATINGS = frozenset({"erotica", "pornographic"})
MANGADEX_LISTING_INCLUDES = ["cover_art", "tag"]
MANGADEX_RECENT_DAYS = 30
JIKAN_TRENDING_MIN_SCORE = 7.5

# =============================================================================
# Cache namespaces
# =============================================================================
CACHE_NS_TMDB_GENRES = "tmdb:genres"
CACHE_NS_MANGADEX_STATS = "mangadex:stats"
MEMORY_CACHE_MAX_SIZE = 10_000

# =============================================================================
# Jobs
# =============================================================================
JOB_STATUS_LOG_LIMIT = 10
JOB_RECENT_DEFAULT_LIMIT = 50
JOB_RECENT_MAX_LIMIT = 200
