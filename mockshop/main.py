# mockshop/main.py
import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mockshop.cart import CartLedger
from mockshop.config import Settings, load_settings
from mockshop.core import (
    DEFAULT_FEED_LIMIT,
    ProductQuery,
    feed_categories,
    filter_options,
    parse_int,
    query_feed,
    query_products,
)
from mockshop.database import CartStore, InMemoryCartStore, ShopData, load_shop_data
from mockshop.errors import NotFoundError, ShopError, ValidationError
from mockshop.models import AddToCartIn, UpdateCartIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ---------------------------
# Dependencies
# ---------------------------
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_data(request: Request) -> ShopData:
    return request.app.state.data


def get_ledger(request: Request) -> CartLedger:
    return request.app.state.ledger


def new_session_id() -> str:
    # not cryptographically unique; only keeps carts apart for a demo server
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def get_session_id(request: Request, settings: Settings = Depends(get_settings)) -> str:
    return request.headers.get(settings.session_header) or new_session_id()


def _require_int(name: str, raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        raise ValidationError(f"{name} is required")
    return parse_int(name, raw)


async def _simulate_latency(settings: Settings) -> None:
    if settings.geo_delay_seconds > 0:
        await asyncio.sleep(settings.geo_delay_seconds)


# ---------------------------
# Product search & filter
# ---------------------------
@router.get("/products")
async def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    min_rating: Optional[str] = Query(None, alias="minRating"),
    sort: Optional[str] = None,
    order: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    in_stock: Optional[str] = Query(None, alias="inStock"),
    data: ShopData = Depends(get_data),
):
    query = ProductQuery.from_params({
        "search": search,
        "category": category,
        "subcategory": subcategory,
        "brand": brand,
        "minPrice": min_price,
        "maxPrice": max_price,
        "minRating": min_rating,
        "sort": sort,
        "order": order,
        "page": page,
        "limit": limit,
        "inStock": in_stock,
    })
    result = query_products(data.products, query)
    return {
        "success": True,
        "data": [p.to_json() for p in result.items],
        "pagination": result.pagination.to_json(),
        "filters": result.filters,
    }


@router.get("/products/filters")
async def product_filters(data: ShopData = Depends(get_data)):
    return {"success": True, "data": filter_options(data.products)}


@router.get("/products/{product_id}")
async def get_product(product_id: int, data: ShopData = Depends(get_data)):
    product = data.product_by_id(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return {"success": True, "data": product.to_json()}


# ---------------------------
# Infinite-scroll feed
# ---------------------------
@router.get("/feed")
async def list_feed(
    cursor: Optional[str] = None,
    limit: Optional[str] = None,
    category: Optional[str] = None,
    data: ShopData = Depends(get_data),
):
    page = query_feed(
        data.feed,
        category=category or None,
        cursor=parse_int("cursor", cursor, 0, minimum=0),
        limit=parse_int("limit", limit, DEFAULT_FEED_LIMIT, minimum=1),
    )
    return {
        "success": True,
        "data": [item.to_json() for item in page.items],
        "pagination": page.pagination(),
    }


@router.get("/feed/categories")
async def list_feed_categories(data: ShopData = Depends(get_data)):
    return {"success": True, "data": feed_categories(data.feed)}


# ---------------------------
# Dependent dropdowns (country -> state -> city)
# ---------------------------
@router.get("/countries")
async def list_countries(data: ShopData = Depends(get_data)):
    return {"success": True, "data": [c.to_json() for c in data.countries]}


@router.get("/states")
async def list_states(
    country_id: Optional[str] = Query(None, alias="countryId"),
    data: ShopData = Depends(get_data),
    settings: Settings = Depends(get_settings),
):
    states = data.states_for_country(_require_int("countryId", country_id))
    await _simulate_latency(settings)
    return {"success": True, "data": [s.to_json() for s in states]}


@router.get("/cities")
async def list_cities(
    state_id: Optional[str] = Query(None, alias="stateId"),
    data: ShopData = Depends(get_data),
    settings: Settings = Depends(get_settings),
):
    cities = data.cities_for_state(_require_int("stateId", state_id))
    await _simulate_latency(settings)
    return {"success": True, "data": [c.to_json() for c in cities]}


# ---------------------------
# Cart
# ---------------------------
@router.get("/cart")
async def view_cart(
    session_id: str = Depends(get_session_id),
    ledger: CartLedger = Depends(get_ledger),
):
    return {"success": True, "sessionId": session_id, "data": ledger.get(session_id).to_json()}


@router.post("/cart/add")
async def cart_add(
    payload: AddToCartIn,
    session_id: str = Depends(get_session_id),
    ledger: CartLedger = Depends(get_ledger),
):
    view = await ledger.add(session_id, payload.product_id, payload.quantity)
    return {
        "success": True,
        "message": "Item added to cart",
        "sessionId": session_id,
        "data": view.to_json(),
    }


@router.put("/cart/update")
async def cart_update(
    payload: UpdateCartIn,
    session_id: str = Depends(get_session_id),
    ledger: CartLedger = Depends(get_ledger),
):
    view = await ledger.update(session_id, payload.product_id, payload.quantity)
    return {"success": True, "message": "Cart updated", "data": view.to_json()}


@router.delete("/cart/remove/{product_id}")
async def cart_remove(
    product_id: int,
    session_id: str = Depends(get_session_id),
    ledger: CartLedger = Depends(get_ledger),
):
    view = await ledger.remove(session_id, product_id)
    return {"success": True, "message": "Item removed from cart", "data": view.to_json()}


@router.delete("/cart/clear")
async def cart_clear(
    session_id: str = Depends(get_session_id),
    ledger: CartLedger = Depends(get_ledger),
):
    await ledger.clear(session_id)
    return {"success": True, "message": "Cart cleared"}


@router.post("/cart/validate")
async def cart_validate(
    session_id: str = Depends(get_session_id),
    ledger: CartLedger = Depends(get_ledger),
):
    result = ledger.validate(session_id)
    if not result.valid:
        return JSONResponse(status_code=400, content={
            "success": False,
            "error": "Cart validation failed",
            "message": "Cart validation failed",
            "issues": [i.to_json() for i in result.issues],
            "validItems": [item.to_json() for item in result.items],
        })
    return {
        "success": True,
        "message": "Cart is valid",
        "data": {
            "items": [item.to_json() for item in result.items],
            "summary": result.summary.to_json(),
        },
    }


# ---------------------------
# Index
# ---------------------------
ENDPOINTS: Dict[str, Dict[str, str]] = {
    "products": {
        "GET /api/products": "Search & filter products (supports: search, category, subcategory, brand, "
                             "minPrice, maxPrice, minRating, sort, order, page, limit, inStock)",
        "GET /api/products/filters": "Get available filter options",
        "GET /api/products/:id": "Get single product",
    },
    "feed": {
        "GET /api/feed": "Get feed items with cursor-based pagination (supports: cursor, limit, category)",
        "GET /api/feed/categories": "Get feed categories",
    },
    "location": {
        "GET /api/countries": "Get all countries",
        "GET /api/states?countryId=X": "Get states by country",
        "GET /api/cities?stateId=X": "Get cities by state",
    },
    "cart": {
        "GET /api/cart": "Get cart items (keyed by the session header, x-session-id by default)",
        "POST /api/cart/add": "Add item to cart { productId, quantity }",
        "PUT /api/cart/update": "Update item quantity { productId, quantity }",
        "DELETE /api/cart/remove/:productId": "Remove item from cart",
        "DELETE /api/cart/clear": "Clear entire cart",
        "POST /api/cart/validate": "Validate cart before checkout",
    },
}


async def index():
    return {"message": "Frontend Interview API Server", "endpoints": ENDPOINTS}


# ---------------------------
# Error envelopes
# ---------------------------
def _describe_validation_errors(errors: List[Dict[str, Any]]) -> str:
    if not errors:
        return "Invalid request"
    err = errors[0]
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
    field = loc[-1] if loc else "request body"
    if err.get("type") == "missing":
        return f"{field} is required"
    return f"{field}: {err.get('msg', 'invalid value')}"


async def shop_error_handler(request: Request, exc: ShopError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": _describe_validation_errors(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


# ---------------------------
# App factory
# ---------------------------
def create_app(
    settings: Optional[Settings] = None,
    data: Optional[ShopData] = None,
    cart_store: Optional[CartStore] = None,
) -> FastAPI:
    """
    Build the API. When data is not given it is loaded from settings.data_dir
    at startup, and a load failure aborts startup.
    """
    settings = settings or load_settings()
    cart_store = cart_store if cart_store is not None else InMemoryCartStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.data is None:
            loaded = load_shop_data(settings.data_dir)
            app.state.data = loaded
            app.state.ledger = CartLedger(loaded, cart_store)
        yield

    app = FastAPI(title="mockshop (in-memory frontend-interview API)", lifespan=lifespan)
    app.state.settings = settings
    app.state.data = data
    app.state.ledger = CartLedger(data, cart_store) if data is not None else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.add_api_route("/", index, methods=["GET"])
    app.include_router(router)
    return app


app = create_app()
