# tests/test_query.py
import pytest

from mockshop.core import (
    ProductQuery,
    feed_categories,
    filter_options,
    parse_float,
    parse_int,
    query_feed,
    query_products,
)
from conftest import make_product
from mockshop.errors import ValidationError


def ids(items):
    return [item.id for item in items]


def run_query(products, **params):
    return query_products(products, ProductQuery.from_params(params))


# ---------------------------
# Filters
# ---------------------------
def test_search_matches_name_description_or_tag(products):
    page = run_query(products, search="BLUETOOTH")
    assert set(ids(page.items)) == {2, 4}

    page = run_query(products, search="portable")
    assert ids(page.items) == [4]


def test_category_subcategory_brand_are_case_insensitive_exact(products):
    assert set(ids(run_query(products, category="electronics", limit="50").items)) == {2, 4, 6, 7}
    assert set(ids(run_query(products, subcategory="AUDIO").items)) == {4, 6}
    assert set(ids(run_query(products, brand="zeta").items)) == {2, 4, 7}
    assert run_query(products, category="Electro").items == []


def test_price_range_is_inclusive(products):
    page = run_query(products, minPrice="10", maxPrice="49.99")
    assert set(ids(page.items)) == {1, 2, 4, 8}


def test_min_rating(products):
    page = run_query(products, minRating="4.5")
    assert set(ids(page.items)) == {1, 4, 6, 7}


def test_stock_filter_is_tristate(products):
    in_stock = run_query(products, inStock="true", limit="50")
    assert set(ids(in_stock.items)) == {1, 2, 4, 5, 6, 7}

    out_of_stock = run_query(products, inStock="false")
    # product 8 claims inStock but has no units
    assert set(ids(out_of_stock.items)) == {3, 8}

    assert run_query(products, inStock="").pagination.total_items == 8


def test_every_returned_item_satisfies_all_filters(products):
    params = dict(category="Electronics", brand="Zeta", minPrice="5", maxPrice="60", minRating="4", inStock="true")
    page = run_query(products, limit="50", **params)
    assert page.items
    for p in page.items:
        assert p.category.lower() == "electronics"
        assert p.brand.lower() == "zeta"
        assert 5 <= p.price <= 60
        assert p.rating >= 4
        assert p.in_stock and p.stock > 0


# ---------------------------
# Sorting
# ---------------------------
def test_default_sort_is_name_case_insensitive(products):
    page = run_query(products, limit="50")
    assert ids(page.items) == [5, 3, 4, 7, 2, 6, 1, 8]


def test_sort_by_price_both_directions(products):
    asc = [p.price for p in run_query(products, sort="price", limit="50").items]
    desc = [p.price for p in run_query(products, sort="price", order="desc", limit="50").items]
    assert asc == sorted(asc)
    assert desc == sorted(asc, reverse=True)


def test_descending_sort_keeps_catalog_order_for_ties(products):
    page = run_query(products, sort="rating", order="desc", limit="50")
    assert ids(page.items) == [4, 1, 6, 7, 3, 2, 8, 5]


def test_unknown_sort_key_falls_back_to_name(products):
    assert ids(run_query(products, sort="popularity", limit="50").items) == ids(run_query(products, limit="50").items)


def test_name_sort_ignores_accents_and_case():
    names = ["Zebra", "\u00c9clair", "apple", "eclair", "Apple"]
    products = [make_product(i, name, 1.0, 1, "Misc", "Misc", "Acme", 3.0) for i, name in enumerate(names, 1)]
    page = run_query(products, limit="50")
    assert [p.name for p in page.items] == ["Apple", "apple", "eclair", "\u00c9clair", "Zebra"]


@pytest.mark.parametrize("params", [{"sort": "Price"}, {"sort": " price"}, {"sort": "PRICE", "order": "Desc"}])
def test_sort_keys_are_exact(params):
    query = ProductQuery.from_params(params)
    assert (query.sort, query.order) == ("name", "asc")


def test_order_is_exact():
    assert ProductQuery.from_params({"order": "DESC"}).order == "asc"
    assert ProductQuery.from_params({"order": "desc"}).order == "desc"


def test_text_filters_are_not_trimmed(products):
    assert run_query(products, category=" Electronics").items == []
    assert run_query(products, brand="Zeta ").items == []
    assert ids(run_query(products, search=" speaker").items) == [4]
    assert run_query(products, search="speaker ").items == []
    assert run_query(products, category=" Electronics").filters["category"] == " Electronics"


# ---------------------------
# Pagination
# ---------------------------
def test_pagination_metadata(products):
    first = run_query(products, limit="3")
    assert first.pagination.to_json() == {
        "currentPage": 1,
        "totalPages": 3,
        "totalItems": 8,
        "itemsPerPage": 3,
        "hasNextPage": True,
        "hasPrevPage": False,
    }

    last = run_query(products, limit="3", page="3")
    assert len(last.items) == 2
    assert last.pagination.has_next_page is False
    assert last.pagination.has_prev_page is True


def test_pages_partition_the_sorted_result(products):
    full = ids(run_query(products, limit="50").items)
    paged = []
    for page in range(1, 4):
        paged.extend(ids(run_query(products, limit="3", page=str(page)).items))
    assert paged == full


def test_page_past_the_end_is_empty(products):
    page = run_query(products, page="5")
    assert page.items == []
    assert page.pagination.has_next_page is False


def test_default_page_size_is_six(products):
    page = run_query(products)
    assert len(page.items) == 6
    assert page.pagination.total_pages == 2


# ---------------------------
# Parameter parsing
# ---------------------------
@pytest.mark.parametrize("params", [
    {"minPrice": "abc"},
    {"maxPrice": "NaN"},
    {"maxPrice": "inf"},
    {"minRating": "6"},
    {"page": "0"},
    {"page": "1.5"},
    {"limit": "-1"},
    {"inStock": "maybe"},
])
def test_malformed_parameters_are_rejected(params):
    with pytest.raises(ValidationError):
        ProductQuery.from_params(params)


def test_blank_parameters_use_defaults():
    query = ProductQuery.from_params({"minPrice": "", "maxPrice": " ", "page": "", "limit": None})
    assert query.min_price == 0
    assert query.max_price is None
    assert query.page == 1
    assert query.limit == 6


def test_parse_helpers():
    assert parse_float("x", "2.50") == 2.5
    assert parse_int("x", " 7 ") == 7
    with pytest.raises(ValidationError, match="x must be >= 0"):
        parse_int("x", "-3", minimum=0)


# ---------------------------
# Filter options
# ---------------------------
def test_filter_options(products):
    options = filter_options(products)
    assert options["categories"] == ["Electronics", "Kitchen", "Tools"]
    assert options["brands"] == ["Acme", "SoundCo", "Zeta"]
    assert "Audio" in options["subcategories"]
    assert options["priceRange"] == {"min": 5.0, "max": 120.0}


def test_filter_options_on_empty_catalog():
    assert filter_options([])["priceRange"] == {"min": None, "max": None}


# ---------------------------
# Feed
# ---------------------------
def test_feed_cursor_chain_is_contiguous(shop_data):
    seen = []
    cursor = 0
    while cursor is not None:
        page = query_feed(shop_data.feed, cursor=cursor, limit=4)
        seen.extend(ids(page.items))
        assert page.has_more == (page.next_cursor is not None)
        cursor = page.next_cursor
    assert seen == list(range(1, 15))


def test_feed_last_page_has_no_next_cursor(shop_data):
    page = query_feed(shop_data.feed, cursor=7, limit=7)
    assert page.returned == 7
    assert page.next_cursor is None
    assert page.has_more is False


def test_feed_category_filter(shop_data):
    page = query_feed(shop_data.feed, category="SPORTS", limit=3)
    assert ids(page.items) == [2, 4, 6]
    assert page.total == 7
    assert page.next_cursor == 3


def test_feed_category_is_matched_as_given(shop_data):
    assert query_feed(shop_data.feed, category=" sports").items == []


def test_feed_cursor_past_end(shop_data):
    page = query_feed(shop_data.feed, cursor=100)
    assert page.items == []
    assert page.next_cursor is None
    assert page.total == 14


def test_feed_rejects_negative_cursor(shop_data):
    with pytest.raises(ValidationError):
        query_feed(shop_data.feed, cursor=-1)


def test_feed_categories(shop_data):
    assert feed_categories(shop_data.feed) == ["news", "sports"]
