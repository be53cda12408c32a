# mockshop/core.py
"""
Filtering, sorting and pagination over the catalog and the feed.

Everything here is a pure function of its inputs; the stores passed in are
never mutated.
"""
import math
import unicodedata
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import Field

from mockshop.errors import ValidationError
from mockshop.models import FeedItem, Product, ShopModel

DEFAULT_PAGE_SIZE = 6
DEFAULT_FEED_LIMIT = 6
SORT_KEYS = ("price", "rating", "name")


# ---------------------------
# Query parameter parsing
# ---------------------------
def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def parse_float(
    name: str,
    raw: Any,
    default: Optional[float] = None,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> Optional[float]:
    """Blank means default; anything else must be a finite number within bounds."""
    if _is_blank(raw):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum:g}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{name} must be <= {maximum:g}")
    return value


def parse_int(
    name: str,
    raw: Any,
    default: Optional[int] = None,
    minimum: Optional[int] = None,
) -> Optional[int]:
    if _is_blank(raw):
        return default
    if isinstance(raw, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    return value


def parse_tristate(name: str, raw: Any) -> Optional[bool]:
    if _is_blank(raw):
        return None
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValidationError(f"{name} must be 'true' or 'false'")


# ---------------------------
# Product search
# ---------------------------
class ProductQuery(ShopModel):
    search: str = ""
    category: str = ""
    subcategory: str = ""
    brand: str = ""
    min_price: float = Field(default=0, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    min_rating: float = Field(default=0, ge=0, le=5)
    in_stock: Optional[bool] = None
    sort: str = "name"
    order: str = "asc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    @classmethod
    def from_params(cls, params: Mapping[str, Any], default_limit: int = DEFAULT_PAGE_SIZE) -> "ProductQuery":
        """Build a query from raw camelCase query-string values."""

        def text(key: str) -> str:
            return params.get(key) or ""

        # text filters match as given; sort and order only take exact lowercase keywords
        sort = text("sort")
        return cls(
            search=text("search"),
            category=text("category"),
            subcategory=text("subcategory"),
            brand=text("brand"),
            min_price=parse_float("minPrice", params.get("minPrice"), 0, minimum=0),
            max_price=parse_float("maxPrice", params.get("maxPrice"), None, minimum=0),
            min_rating=parse_float("minRating", params.get("minRating"), 0, minimum=0, maximum=5),
            in_stock=parse_tristate("inStock", params.get("inStock")),
            sort=sort if sort in SORT_KEYS else "name",
            order="desc" if text("order") == "desc" else "asc",
            page=parse_int("page", params.get("page"), 1, minimum=1),
            limit=parse_int("limit", params.get("limit"), default_limit, minimum=1),
        )

    def filters(self) -> Dict[str, Any]:
        return {
            "search": self.search,
            "category": self.category,
            "subcategory": self.subcategory,
            "brand": self.brand,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
            "minRating": self.min_rating,
            "inStock": self.in_stock,
        }


class PagePagination(ShopModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class ProductPage(ShopModel):
    items: List[Product]
    pagination: PagePagination
    filters: Dict[str, Any]


def _matches_search(p: Product, term: str) -> bool:
    return (
        term in p.name.lower()
        or term in p.description.lower()
        or any(term in tag.lower() for tag in p.tags)
    )


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _name_key(p: Product):
    # accents and case are ignored first; the raw name only breaks ties
    return (_fold(p.name), p.name.casefold(), p.name)


_SORTERS = {
    "price": lambda p: p.price,
    "rating": lambda p: p.rating,
    "name": _name_key,
}


def filter_products(products: Sequence[Product], query: ProductQuery) -> List[Product]:
    out = list(products)

    if query.search:
        term = query.search.lower()
        out = [p for p in out if _matches_search(p, term)]
    if query.category:
        out = [p for p in out if p.category.lower() == query.category.lower()]
    if query.subcategory:
        out = [p for p in out if p.subcategory.lower() == query.subcategory.lower()]
    if query.brand:
        out = [p for p in out if p.brand.lower() == query.brand.lower()]

    max_price = math.inf if query.max_price is None else query.max_price
    out = [p for p in out if query.min_price <= p.price <= max_price]
    out = [p for p in out if p.rating >= query.min_rating]

    if query.in_stock is True:
        out = [p for p in out if p.in_stock and p.stock > 0]
    elif query.in_stock is False:
        out = [p for p in out if not p.in_stock or p.stock == 0]
    return out


def query_products(products: Sequence[Product], query: ProductQuery) -> ProductPage:
    filtered = filter_products(products, query)

    # list.sort is stable in both directions, so equal keys keep catalog order
    filtered.sort(key=_SORTERS.get(query.sort, _name_key), reverse=query.order == "desc")

    start = (query.page - 1) * query.limit
    end = start + query.limit
    total = len(filtered)

    return ProductPage(
        items=filtered[start:end],
        pagination=PagePagination(
            current_page=query.page,
            total_pages=math.ceil(total / query.limit),
            total_items=total,
            items_per_page=query.limit,
            has_next_page=end < total,
            has_prev_page=query.page > 1,
        ),
        filters=query.filters(),
    )


def filter_options(products: Sequence[Product]) -> Dict[str, Any]:
    prices = [p.price for p in products]
    return {
        "categories": sorted({p.category for p in products}),
        "subcategories": sorted({p.subcategory for p in products}),
        "brands": sorted({p.brand for p in products}),
        "priceRange": {
            "min": min(prices) if prices else None,
            "max": max(prices) if prices else None,
        },
    }


# ---------------------------
# Feed (cursor pagination)
# ---------------------------
class FeedPage(ShopModel):
    items: List[FeedItem]
    next_cursor: Optional[int]
    has_more: bool
    total: int
    returned: int

    def pagination(self) -> Dict[str, Any]:
        return {
            "nextCursor": self.next_cursor,
            "hasMore": self.has_more,
            "total": self.total,
            "returned": self.returned,
        }


def query_feed(
    feed: Sequence[FeedItem],
    category: Optional[str] = None,
    cursor: int = 0,
    limit: int = DEFAULT_FEED_LIMIT,
) -> FeedPage:
    """Return feed[cursor:cursor+limit] of the (optionally filtered) feed."""
    if cursor < 0:
        raise ValidationError("cursor must be >= 0")
    if limit < 1:
        raise ValidationError("limit must be >= 1")

    items = list(feed)
    if category:
        items = [f for f in items if f.category.lower() == category.lower()]

    end = cursor + limit
    page = items[cursor:end]
    next_cursor = end if end < len(items) else None
    return FeedPage(
        items=page,
        next_cursor=next_cursor,
        has_more=next_cursor is not None,
        total=len(items),
        returned=len(page),
    )


def feed_categories(feed: Sequence[FeedItem]) -> List[str]:
    return sorted({f.category for f in feed})
