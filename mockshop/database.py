# mockshop/database.py
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from mockshop.errors import DataLoadError
from mockshop.models import Cart, City, Country, FeedItem, Product, State

logger = logging.getLogger(__name__)

# This file holds the read-only reference data and the cart storage backends.

DATA_FILES = {
    "products": ("products.json", TypeAdapter(List[Product])),
    "feed": ("feed.json", TypeAdapter(List[FeedItem])),
    "countries": ("countries.json", TypeAdapter(List[Country])),
    "states": ("states.json", TypeAdapter(List[State])),
    "cities": ("cities.json", TypeAdapter(List[City])),
}


# ---------------------------
# Catalog / feed / geo stores
# ---------------------------
class ShopData:
    """Everything loaded at startup. Never mutated afterwards."""

    def __init__(
        self,
        products: List[Product],
        feed: List[FeedItem],
        countries: List[Country],
        states: List[State],
        cities: List[City],
    ):
        self.products = tuple(products)
        self.feed = tuple(feed)
        self.countries = tuple(countries)
        self.states = tuple(states)
        self.cities = tuple(cities)

        self._products_by_id: Dict[int, Product] = {}
        for p in self.products:
            if p.id in self._products_by_id:
                raise DataLoadError(f"duplicate product id {p.id}")
            self._products_by_id[p.id] = p

    def product_by_id(self, product_id: int) -> Optional[Product]:
        return self._products_by_id.get(product_id)

    def states_for_country(self, country_id: int) -> List[State]:
        return [s for s in self.states if s.country_id == country_id]

    def cities_for_state(self, state_id: int) -> List[City]:
        return [c for c in self.cities if c.state_id == state_id]

    def counts(self) -> Dict[str, int]:
        return {
            "products": len(self.products),
            "feed": len(self.feed),
            "countries": len(self.countries),
            "states": len(self.states),
            "cities": len(self.cities),
        }


def _warn_inconsistent_stock(products: List[Product]) -> None:
    # inStock and stock are independent fields in the data files; report, don't repair
    for p in products:
        if p.in_stock != (p.stock > 0):
            logger.warning(
                "product %s has inStock=%s but stock=%s", p.id, p.in_stock, p.stock
            )


def load_shop_data(data_dir: Union[str, Path]) -> ShopData:
    """
    Read the five JSON collections from data_dir.

    A missing file, undecodable bytes, malformed JSON or a schema violation
    all raise DataLoadError.
    """
    data_dir = Path(data_dir)
    loaded = {}
    for key, (filename, adapter) in DATA_FILES.items():
        path = data_dir / filename
        try:
            raw = path.read_text(encoding="utf-8")
            loaded[key] = adapter.validate_python(json.loads(raw))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, PydanticValidationError) as exc:
            logger.critical("Error loading %s: %s", path, exc)
            raise DataLoadError(f"failed to load {path}: {exc}") from exc

    try:
        data = ShopData(**loaded)
    except DataLoadError as exc:
        logger.critical("Error loading %s: %s", data_dir, exc)
        raise
    _warn_inconsistent_stock(loaded["products"])

    logger.info("Data loaded successfully")
    for key, count in data.counts().items():
        logger.info("   %s: %d", key, count)
    return data


# ---------------------------
# Cart storage
# ---------------------------
class CartStore(ABC):
    """Session-keyed cart storage. Swap the implementation to change the backend."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[Cart]:
        ...

    @abstractmethod
    def set(self, session_id: str, cart: Cart) -> None:
        ...

    @abstractmethod
    def delete(self, session_id: str) -> None:
        ...


class InMemoryCartStore(CartStore):
    def __init__(self):
        self._carts: Dict[str, Cart] = {}

    def get(self, session_id: str) -> Optional[Cart]:
        return self._carts.get(session_id)

    def set(self, session_id: str, cart: Cart) -> None:
        self._carts[session_id] = cart

    def delete(self, session_id: str) -> None:
        self._carts.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._carts)
