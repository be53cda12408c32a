from sdk.shopclient import ShopAPIError, StoreClient

__all__ = ["ShopAPIError", "StoreClient"]
