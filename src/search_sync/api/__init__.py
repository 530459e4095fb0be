"""HTTP API for health, metrics and full reindex control."""

from search_sync.api.router import router

__all__ = ["router"]
