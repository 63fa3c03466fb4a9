"""Shared test fixtures."""

import asyncio
import json
import threading
from dataclasses import dataclass, field

import pytest

from food_lookup.adapters.off_client import OffClient, RawResponse
from food_lookup.config import Settings
from food_lookup.containers import AppContainer
from food_lookup.domain.errors import NetworkError
from food_lookup.services.food_search import FoodSearchService
from food_lookup.services.rate_limit import RateLimitGuard
from food_lookup.services.retry import RetryPolicy

COLA_PAYLOAD: dict[str, object] = {
    "products": [
        {"product_name": "Cola", "nutriments": {"energy-kcal_serving": 140}},
        {
            "product_name": "Cherry Cola",
            "brands": "Acme",
            "nutriments": {"energy-kcal_100g": "42.5"},
        },
    ]
}


def ok(payload: dict[str, object] | None = None) -> RawResponse:
    body = json.dumps(payload or COLA_PAYLOAD).encode()
    return RawResponse(status_code=200, body=body)


def status(code: int, retry_after: float | None = None) -> RawResponse:
    return RawResponse(status_code=code, body=b"", retry_after=retry_after)


@dataclass
class FakeClock:
    """Manually advanced monotonic clock with a recording sleep."""

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


@dataclass
class ScriptedOffClient(OffClient):
    """Fake OFF client replaying scripted responses per search key."""

    scripts: dict[str, list[RawResponse | Exception]] = field(default_factory=dict)
    default: RawResponse = field(default_factory=ok)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    release: threading.Event | None = None
    clock: FakeClock | None = None
    calls: list[tuple[str, int, float]] = field(default_factory=list)

    async def fetch(self, query: str, page_size: int) -> RawResponse:
        key = query.strip().lower()
        self.calls.append((key, page_size, self.clock.now if self.clock else 0.0))
        await asyncio.sleep(0)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        while self.release is not None and not self.release.is_set():
            await asyncio.sleep(0.01)
        script = self.scripts.get(key)
        outcome = script.pop(0) if script else self.default
        if isinstance(outcome, Exception):
            raise NetworkError(outcome)
        return outcome

    def calls_for(self, key: str) -> int:
        return sum(1 for call in self.calls if call[0] == key)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def off_client(clock: FakeClock) -> ScriptedOffClient:
    return ScriptedOffClient(clock=clock)


@pytest.fixture
def search_service(
    clock: FakeClock, off_client: ScriptedOffClient
) -> FoodSearchService:
    return FoodSearchService(
        client=off_client,
        rate_limit_guard=RateLimitGuard(clock=clock),
        retry_policy=RetryPolicy(),
        sleep=clock.sleep,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(off_base_url="https://off.test", result_cache_ttl_seconds=0)


@pytest.fixture
def container(settings: Settings, search_service: FoodSearchService) -> AppContainer:
    async def close_resources() -> None:
        await search_service.aclose()

    return AppContainer(
        settings=settings,
        food_search_service=search_service,
        close_resources=close_resources,
    )
