"""API routers."""

from mediahub.api.router import api_router

__all__ = ["api_router"]
