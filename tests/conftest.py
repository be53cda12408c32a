# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from mockshop.cart import CartLedger
from mockshop.config import Settings
from mockshop.database import ShopData
from mockshop.main import create_app
from mockshop.models import City, Country, FeedItem, Product, State


def make_product(id, name, price, stock, category, subcategory, brand, rating, tags=(), in_stock=None, **extra):
    return Product(
        id=id,
        name=name,
        description=extra.pop("description", f"{name} for everyday use"),
        tags=list(tags),
        category=category,
        subcategory=subcategory,
        brand=brand,
        price=price,
        rating=rating,
        in_stock=stock > 0 if in_stock is None else in_stock,
        stock=stock,
        image=f"https://img.test/{id}.png",
        **extra,
    )


def make_products():
    return [
        make_product(1, "Widget", 10.0, 2, "Tools", "Hand", "Acme", 4.5, tags=["metal"]),
        make_product(2, "Gadget", 25.5, 10, "Electronics", "Phones", "Zeta", 3.8, tags=["wireless", "Bluetooth"]),
        make_product(3, "apple slicer", 7.25, 0, "Kitchen", "Utensils", "Acme", 4.1),
        make_product(4, "Bluetooth Speaker", 49.99, 5, "Electronics", "Audio", "Zeta", 4.9, description="Loud and portable"),
        make_product(5, "Anvil", 120.0, 1, "Tools", "Heavy", "Acme", 2.0),
        make_product(6, "Headphones", 79.0, 3, "Electronics", "Audio", "SoundCo", 4.5),
        make_product(7, "Cable", 5.0, 100, "Electronics", "Accessories", "Zeta", 4.5),
        # inStock flag disagrees with stock on purpose
        make_product(8, "Zebra Mug", 12.0, 0, "Kitchen", "Drinkware", "Acme", 3.0, in_stock=True),
    ]


def make_feed():
    return [
        FeedItem(id=i, category="news" if i % 2 else "sports", title=f"Story {i}")
        for i in range(1, 15)
    ]


def make_shop_data(products=None):
    return ShopData(
        products=make_products() if products is None else products,
        feed=make_feed(),
        countries=[Country(id=1, name="Freedonia"), Country(id=2, name="Sylvania")],
        states=[
            State(id=1, name="North", country_id=1),
            State(id=2, name="South", country_id=1),
            State(id=3, name="Coast", country_id=2),
        ],
        cities=[
            City(id=1, name="Northville", state_id=1),
            City(id=2, name="Port North", state_id=1),
            City(id=3, name="Bayside", state_id=3),
        ],
    )


@pytest.fixture
def shop_data():
    return make_shop_data()


@pytest.fixture
def products(shop_data):
    return shop_data.products


@pytest.fixture
def ledger(shop_data):
    return CartLedger(shop_data)


@pytest.fixture
def settings():
    return Settings(geo_delay_seconds=0)


@pytest.fixture
def app(settings, shop_data):
    return create_app(settings=settings, data=shop_data)


@pytest.fixture
def client(app):
    return TestClient(app)
