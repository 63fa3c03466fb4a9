"""Map Open Food Facts search responses into food records."""

import json
import math
from dataclasses import dataclass

from food_lookup.domain.errors import DecodingError
from food_lookup.domain.foods import FoodRecord, search_key

_SERVING_KEYS = ("energy-kcal_serving", "energy_kcal_serving")
_PER_100G_KEYS = ("energy-kcal_100g", "energy_kcal_100g")


@dataclass(frozen=True)
class _MappedProduct:
    record: FoodRecord
    brand: str | None


def map_search_response(body: bytes | str, query: str) -> list[FoodRecord]:
    """Parse, filter and sort the products of a search response."""
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise DecodingError(exc) from exc
    if not isinstance(payload, dict):
        raise DecodingError("top-level value is not an object")
    products = payload.get("products")
    if not isinstance(products, list):
        raise DecodingError("missing products array")

    mapped = [
        product
        for product in (_map_product(item) for item in products)
        if product is not None
    ]
    needle = search_key(query)
    matching = [
        product.record for product in mapped if _matches(product, needle)
    ]
    return sort_records(matching)


def sort_records(records: list[FoodRecord]) -> list[FoodRecord]:
    """Order calorie-bearing records first, then by case-insensitive name."""
    return sorted(
        records, key=lambda record: (not record.has_calories, record.name.lower())
    )


def _map_product(product: object) -> _MappedProduct | None:
    if not isinstance(product, dict):
        return None
    name = _clean_text(product.get("product_name")) or _clean_text(
        product.get("generic_name")
    )
    if name is None:
        return None

    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict):
        nutriments = {}
    per_serving = _first_number(nutriments, _SERVING_KEYS)
    per_100g = _first_number(nutriments, _PER_100G_KEYS)
    if per_serving is not None:
        record = FoodRecord(name=name, calories_per_serving=round(per_serving))
    elif per_100g is not None:
        record = FoodRecord(name=name, calories_per_100g=per_100g)
    else:
        record = FoodRecord(name=name)
    return _MappedProduct(record=record, brand=_clean_text(product.get("brands")))


def _matches(product: _MappedProduct, needle: str) -> bool:
    if needle in product.record.name.lower():
        return True
    return product.brand is not None and needle in product.brand.lower()


def _clean_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _first_number(nutriments: dict[str, object], keys: tuple[str, ...]) -> float | None:
    for key in keys:
        value = _as_number(nutriments.get(key))
        if value is not None:
            return value
    return None


def _as_number(value: object) -> float | None:
    """Accept numbers and numeric strings; ignore everything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None
