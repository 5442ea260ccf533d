"""
Pydantic v2 entities exchanged at the HTTP boundary and stored in Redis.

Field names are the JSON names. Shopping cart entities treat zero values as
"absent": zero integers, empty strings and empty item lists are omitted when
serialized, and null inputs read back as zero.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_serializer


class Product(BaseModel):
    """
    Catalog product. `categories` / `images` are None when the stored array
    is NULL; that is different from an empty array and is omitted from JSON.
    """
    id: int
    name: str = ""
    price: float = 0.0
    description: str = ""
    categories: Optional[List[str]] = None
    images: Optional[List[str]] = None
    referenced_name: str = ""
    date_added: Optional[datetime] = None

    @model_serializer(mode="wrap")
    def _omit_absent_arrays(self, handler) -> Dict[str, Any]:
        data = handler(self)
        for key in ("categories", "images"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class _OmitEmptyModel(BaseModel):
    """Serializes without zero-valued fields."""

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler) -> Dict[str, Any]:
        data = handler(self)
        return {k: v for k, v in data.items() if v not in (0, "", [], None)}


class ShoppingCartItem(_OmitEmptyModel):
    id: int = 0
    shopping_cart_id: int = 0
    product_id: int = 0
    number_of_products: int = 0

    @field_validator("id", "shopping_cart_id", "product_id", "number_of_products", mode="before")
    @classmethod
    def _null_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class ShoppingCart(_OmitEmptyModel):
    """A visitor's cart. `ip_address` doubles as the cache key."""
    id: int = 0
    user_id: int = 0
    ip_address: str = ""
    shopping_cart_items: List[ShoppingCartItem] = Field(default_factory=list)

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _null_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("ip_address", mode="before")
    @classmethod
    def _null_ip_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("shopping_cart_items", mode="before")
    @classmethod
    def _null_items_are_empty(cls, value: Any) -> Any:
        return [] if value is None else value
