"""
FastAPI dependency wiring.

Process-wide singletons built from Settings on first use. Tests replace
`get_ingestion_service` through `app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache

from api.config import Settings, load_settings
from repositories.store import GatewayStore
from services.lead_ingestion_service import LeadIngestionService
from services.rate_limiter import RateLimiter


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_store() -> GatewayStore:
    if get_settings().store_backend == "memory":
        from repositories.memory_store import InMemoryGatewayStore

        return InMemoryGatewayStore()

    from repositories.store import SupabaseGatewayStore

    return SupabaseGatewayStore()


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    settings = get_settings()
    if settings.rate_limit_backend == "supabase":
        from repositories.rate_limit_repository import SupabaseAtomicCounter

        return RateLimiter(SupabaseAtomicCounter(), window_seconds=settings.rate_limit_window_seconds)
    return RateLimiter(window_seconds=settings.rate_limit_window_seconds)


@lru_cache(maxsize=1)
def get_ingestion_service() -> LeadIngestionService:
    return LeadIngestionService(store=get_store(), rate_limiter=get_rate_limiter())
