"""FastAPI application factory."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request

from food_lookup.app_logging import configure_logging
from food_lookup.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(debug=container.settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container.food_search_service.bind_loop(asyncio.get_running_loop())
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/foods/search")
    async def search_foods(
        request: Request,
        q: str = Query(default=""),
        limit: int = Query(default=50, ge=1),
    ) -> dict[str, object]:
        """Search foods by name; failures yield an empty list."""
        state_container: AppContainer = request.app.state.container
        foods = await state_container.food_search_service.search(q, limit)
        return {"query": q, "foods": [food.as_dict() for food in foods]}

    return app
