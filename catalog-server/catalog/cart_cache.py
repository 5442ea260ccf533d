"""
Shopping carts kept in Redis under a TTL.

Every upsert replaces the whole cart under key = its ip_address and resets
the expiry (24 hours by default). Reads never refresh the TTL. Last write
wins; there is no merge and no concurrency check.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError

from catalog.config import CART_TTL_SECONDS
from catalog.context import Deadline, check_deadline
from catalog.errors import ExecutionError, NotFoundError
from catalog.metrics import MetricsCollector
from catalog.schemas import ShoppingCart

logger = logging.getLogger("catalog.cart_cache")


class CartCache:
    """
    Upsert/read of whole shopping carts in Redis.

    The Redis client is injected and shared; the cache keeps no copy of any
    cart between calls. Cart hits and misses feed the optional metrics.
    """

    def __init__(
        self,
        client: redis.Redis,
        ttl_seconds: int = CART_TTL_SECONDS,
        key_prefix: str = "",
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._client = client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self._metrics = metrics

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def upsert(self, cart: ShoppingCart, deadline: Optional[Deadline] = None) -> ShoppingCart:
        """Store `cart` under its ip_address, overwriting any previous cart. Returns `cart`."""
        key = self._key(cart.ip_address)
        try:
            payload = cart.model_dump_json()
        except PydanticSerializationError as e:
            logger.error("Cart serialization error for %s: %s", key, e)
            raise ExecutionError(str(e)) from e

        check_deadline(deadline, "cart upsert")
        try:
            self._client.setex(key, self.ttl_seconds, payload)
        except redis.RedisError as e:
            logger.error("Cart write error for %s: %s", key, e)
            raise ExecutionError(str(e)) from e
        check_deadline(deadline, "cart upsert")
        return cart

    def get(self, key: str, deadline: Optional[Deadline] = None) -> ShoppingCart:
        """
        Load the cart stored under `key`.

        Raises NotFoundError on a miss (including expiry), ExecutionError when
        Redis fails or the stored payload is not a valid cart.
        """
        full_key = self._key(key)
        check_deadline(deadline, "cart get")
        try:
            cached = self._client.get(full_key)
        except (redis.RedisError, UnicodeDecodeError) as e:
            # decode_responses=True decodes inside get(); bad UTF-8 is a malformed payload
            logger.error("Cart read error for %s: %s", full_key, e)
            raise ExecutionError(str(e)) from e
        check_deadline(deadline, "cart get")

        if cached is None:
            if self._metrics is not None:
                self._metrics.record_cache_miss()
            raise NotFoundError(f"shopping cart {key!r} not found")
        if self._metrics is not None:
            self._metrics.record_cache_hit()

        try:
            return ShoppingCart.model_validate_json(cached)
        except PydanticValidationError as e:
            logger.error("Malformed cart payload under %s: %s", full_key, e)
            raise ExecutionError(str(e)) from e

    def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False
