# mockshop/models.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ShopModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# ---------------------------
# Static catalog / feed / geo records
# ---------------------------
class Product(ShopModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: int
    name: str
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    category: str
    subcategory: str = ""
    brand: str = ""
    price: float = Field(ge=0)
    rating: float = Field(default=0, ge=0, le=5)
    in_stock: bool
    stock: int = Field(default=0, ge=0)
    image: str = ""


class FeedItem(ShopModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: int
    category: str


class Country(ShopModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: int
    name: str


class State(ShopModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: int
    name: str
    country_id: int


class City(ShopModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: int
    name: str
    state_id: int


# ---------------------------
# Cart
# ---------------------------
class CartLine(ShopModel):
    product_id: int
    name: str
    price: float
    image: str = ""
    quantity: int = Field(ge=1)


class Cart(ShopModel):
    items: List[CartLine] = Field(default_factory=list)
    created_at: str


class CartSummary(ShopModel):
    subtotal: float
    item_count: int
    created_at: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CartView(ShopModel):
    items: List[CartLine]
    summary: CartSummary

    def to_json(self) -> Dict[str, Any]:
        return {"items": [i.to_json() for i in self.items], "summary": self.summary.to_json()}


class CartIssue(ShopModel):
    """One problem found while validating a cart line. Optional details are omitted when unset."""

    product_id: int
    issue: str
    name: Optional[str] = None
    requested: Optional[int] = None
    available: Optional[int] = None
    old_price: Optional[float] = None
    new_price: Optional[float] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CartValidation(ShopModel):
    issues: List[CartIssue]
    items: List[CartLine]
    summary: CartSummary

    @property
    def valid(self) -> bool:
        return not self.issues


# ---------------------------
# Request bodies
# ---------------------------
class AddToCartIn(ShopModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)


class UpdateCartIn(ShopModel):
    product_id: int
    # required: an absent quantity is an error, distinct from an explicit 0
    quantity: int = Field(ge=0)
