#!/usr/bin/env python
import asyncio
import os

from sdk.shopclient import ShopAPIError, StoreClient


async def concurrent_adds(c: StoreClient, product_id: int, times: int):
    # every add goes through the same session; the server serializes them
    results = await asyncio.gather(
        *(c.add_to_cart_async(product_id, 1) for _ in range(times)),
        return_exceptions=True,
    )
    for r in results:
        if isinstance(r, ShopAPIError):
            print(f"  ❌ rejected: {r.message} {r.payload.get('availableStock', '')}")
        else:
            print(f"  ✅ accepted, cart now holds {r['summary']['itemCount']} item(s)")


def main():
    c = StoreClient(base_url=os.getenv("MOCKSHOP_URL", "http://127.0.0.1:3000"))
    print(f"Session: {c.session_id}")

    # -----------------------------
    # Browse
    # -----------------------------
    print("\nFilter options...")
    print(c.product_filters())

    print("\nIn-stock electronics, cheapest first...")
    page = c.list_products(category="Electronics", inStock="true", sort="price")
    for p in page["data"]:
        print(f"  {p['id']:>3}  {p['name']:<40} ${p['price']:.2f}")
    print(page["pagination"])

    print("\nFeed, two pages...")
    first = c.get_feed(limit=4)
    second = c.get_feed(cursor=first["pagination"]["nextCursor"], limit=4)
    print([f["id"] for f in first["data"]], [f["id"] for f in second["data"]])

    print("\nStates of country 1...")
    print([s["name"] for s in c.list_states(1)])

    # -----------------------------
    # Cart
    # -----------------------------
    c.clear_cart()
    print("\nAdding products to cart...")
    print(c.add_to_cart(1, 1)["summary"])
    print(c.add_to_cart(9, 2)["summary"])

    try:
        c.add_to_cart(13, 5)
    except ShopAPIError as e:
        print(f"Expected failure: {e.message} (available: {e.payload.get('availableStock')})")

    print("\nUpdating quantity...")
    print(c.update_cart(9, 3)["summary"])

    print("\nValidating cart...")
    print(c.validate_cart())

    # -----------------------------
    # Concurrent adds against a low-stock product
    # -----------------------------
    print("\nFive concurrent adds of a product with stock 2...")
    asyncio.run(concurrent_adds(c, 13, 5))
    print(c.view_cart()["summary"])


if __name__ == "__main__":
    main()
