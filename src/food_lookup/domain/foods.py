"""Food lookup domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FoodRecord:
    """A matched food item with optional calorie information."""

    name: str
    calories_per_serving: int | None = None
    calories_per_100g: float | None = None

    @property
    def default_unit(self) -> str:
        return "g" if self.calories_per_100g is not None else "serving"

    @property
    def has_calories(self) -> bool:
        return (
            self.calories_per_serving is not None
            or self.calories_per_100g is not None
        )

    def as_dict(self) -> dict[str, object]:
        """Serialize for JSON responses."""
        return {
            "name": self.name,
            "calories_per_serving": self.calories_per_serving,
            "calories_per_100g": self.calories_per_100g,
            "default_unit": self.default_unit,
        }


@dataclass(frozen=True)
class RetryAttempt:
    """Ephemeral bookkeeping for one search request."""

    query_text: str
    limit: int
    attempt_number: int
    max_attempts: int

    def next(self) -> "RetryAttempt":
        return RetryAttempt(
            query_text=self.query_text,
            limit=self.limit,
            attempt_number=self.attempt_number + 1,
            max_attempts=self.max_attempts,
        )


def search_key(query: str) -> str:
    """Normalize a query into the key used for deduplication and caching."""
    return query.strip().lower()
