"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from food_lookup.adapters.off_client import HttpxOffClient
from food_lookup.config import Settings
from food_lookup.services.cache import InMemoryResultCache
from food_lookup.services.food_search import FoodSearchService
from food_lookup.services.rate_limit import RateLimitGuard
from food_lookup.services.retry import RetryPolicy


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    food_search_service: FoodSearchService
    close_resources: Callable[[], Awaitable[None]]


def build_food_search_service(
    settings: Settings, off_client: HttpxOffClient
) -> FoodSearchService:
    """Create the search service with its guard, policy and optional cache."""
    cache = (
        InMemoryResultCache() if settings.result_cache_ttl_seconds > 0 else None
    )
    return FoodSearchService(
        client=off_client,
        rate_limit_guard=RateLimitGuard(
            default_delay_seconds=settings.rate_limit_default_delay_seconds
        ),
        retry_policy=RetryPolicy(
            max_retries=settings.max_retries,
            base_delay_seconds=settings.retry_base_delay_seconds,
            rate_limit_default_delay_seconds=settings.rate_limit_default_delay_seconds,
        ),
        cache=cache,
        cache_ttl_seconds=settings.result_cache_ttl_seconds,
        max_page_size=settings.max_page_size,
        min_query_length=settings.min_query_length,
        debug=settings.debug,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    off_client = HttpxOffClient.create(
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
        timeout_seconds=resolved_settings.request_timeout_seconds,
    )
    food_search_service = build_food_search_service(resolved_settings, off_client)

    async def close_resources() -> None:
        await food_search_service.aclose()
        await off_client.close()

    return AppContainer(
        settings=resolved_settings,
        food_search_service=food_search_service,
        close_resources=close_resources,
    )
