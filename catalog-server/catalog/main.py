"""
Catalog Server - FastAPI application

Endpoints:
  GET  /products              list products (name, referenced_name, categories, order)
  GET  /products/{id}         single product
  POST /shopping_carts        upsert a cart under its ip_address (24h TTL)
  GET  /shopping_carts        cart for ?ip_address=
  GET  /, /health, /metrics   service status
"""

import logging
import re
import time as _time
from typing import Optional

import redis
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from catalog import __version__
from catalog.cache import create_redis_client
from catalog.cart_cache import CartCache
from catalog.config import Settings
from catalog.context import Deadline
from catalog.database import create_db_engine
from catalog.errors import ExecutionError, NotFoundError, ValidationError
from catalog.metrics import MetricsCollector
from catalog.query_compiler import compile_query
from catalog.repository import ProductRepository
from catalog.schemas import ShoppingCart

logger = logging.getLogger("catalog.main")

INTERNAL_ERROR = "Internal server error"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class LatencyLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every non-OPTIONS request with method, path, status and duration, and records it."""

    def __init__(self, app, metrics: MetricsCollector):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: StarletteRequest, call_next) -> StarletteResponse:
        if request.method == "OPTIONS":
            return await call_next(request)
        t0 = _time.perf_counter()
        response = await call_next(request)
        duration_ms = round((_time.perf_counter() - t0) * 1000, 1)
        route = request.scope.get("route")
        endpoint = f"{request.method} {getattr(route, 'path', request.url.path)}"
        self.metrics.record_request(endpoint, duration_ms, is_error=response.status_code >= 500)
        logger.info(
            "[LATENCY] %s %s -> %d  %.1fms",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        return response


#
# Dependencies
#

def get_repository(request: Request) -> ProductRepository:
    return request.app.state.repository


def get_cart_cache(request: Request) -> CartCache:
    return request.app.state.cart_cache


def get_deadline(request: Request) -> Optional[Deadline]:
    timeout = request.app.state.settings.request_timeout_seconds
    return Deadline.after(timeout) if timeout > 0 else None


_PRODUCT_ID_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN, _INT64_MAX = -(2 ** 63), 2 ** 63 - 1


def parse_product_id(raw: str) -> int:
    """ASCII digits with an optional sign; int() alone also takes `1_0`, spaces and non-ASCII digits."""
    if not _PRODUCT_ID_RE.fullmatch(raw):
        raise ValidationError("Invalid product ID")
    product_id = int(raw)
    if not _INT64_MIN <= product_id <= _INT64_MAX:
        raise ValidationError("Invalid product ID")
    return product_id


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    redis_client: Optional[redis.Redis] = None,
) -> FastAPI:
    """
    Build the application. Engine and Redis client are created from settings
    unless injected; they live as long as the app.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    metrics = MetricsCollector()
    engine = engine if engine is not None else create_db_engine(settings)
    redis_client = redis_client if redis_client is not None else create_redis_client(settings)

    app = FastAPI(
        title="Catalog Server",
        description="Product catalog reads and shopping cart cache",
        version=__version__,
    )
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.repository = ProductRepository(engine)
    app.state.cart_cache = CartCache(
        redis_client,
        ttl_seconds=settings.cart_ttl_seconds,
        key_prefix=settings.cart_key_prefix,
        metrics=metrics,
    )

    app.add_middleware(LatencyLoggingMiddleware, metrics=metrics)

    #
    # Error mapping
    #

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"detail": message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": INTERNAL_ERROR})

    #
    # Service status
    #

    @app.get("/")
    def root():
        return {
            "service": "Catalog Server",
            "version": __version__,
            "status": "operational",
        }

    @app.get("/health")
    def health_check(
        repository: ProductRepository = Depends(get_repository),
        cart_cache: CartCache = Depends(get_cart_cache),
    ):
        """Database and cache connectivity."""
        health_status = {"service": "healthy", "database": "healthy", "cache": "healthy"}
        if not repository.ping():
            health_status["database"] = "unhealthy"
            health_status["service"] = "degraded"
        if not cart_cache.ping():
            health_status["cache"] = "unhealthy"
            health_status["service"] = "degraded"
        return health_status

    @app.get("/metrics")
    def get_metrics():
        return metrics.get_summary()

    #
    # Products
    #

    @app.get("/products")
    def list_products(
        request: Request,
        repository: ProductRepository = Depends(get_repository),
        deadline: Optional[Deadline] = Depends(get_deadline),
    ):
        query = request.query_params
        spec = compile_query({
            "name": query.get("name"),
            "referenced_name": query.get("referenced_name"),
            "categories": query.getlist("categories"),
            "order": query.get("order"),
        })
        try:
            products = repository.find(spec, deadline=deadline)
        except ExecutionError:
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
        return JSONResponse(content=[p.model_dump(mode="json") for p in products])

    @app.get("/products/{product_id}")
    def get_product(
        product_id: str,
        repository: ProductRepository = Depends(get_repository),
        deadline: Optional[Deadline] = Depends(get_deadline),
    ):
        pid = parse_product_id(product_id)
        try:
            product = repository.find_by_id(pid, deadline=deadline)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Product not found")
        except ExecutionError:
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
        return JSONResponse(content=product.model_dump(mode="json"))

    #
    # Shopping carts
    # Cache-layer failures report the underlying message as the detail.
    #

    @app.post("/shopping_carts")
    def upsert_shopping_cart(
        cart: ShoppingCart,
        cart_cache: CartCache = Depends(get_cart_cache),
        deadline: Optional[Deadline] = Depends(get_deadline),
    ):
        try:
            stored = cart_cache.upsert(cart, deadline=deadline)
        except ExecutionError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return JSONResponse(content=stored.model_dump(mode="json"))

    @app.get("/shopping_carts")
    def get_shopping_cart(
        ip_address: Optional[str] = None,
        cart_cache: CartCache = Depends(get_cart_cache),
        deadline: Optional[Deadline] = Depends(get_deadline),
    ):
        if not ip_address:
            raise ValidationError("ip_address query parameter is required")
        try:
            cart = cart_cache.get(ip_address, deadline=deadline)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Shopping cart not found")
        except ExecutionError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return JSONResponse(content=cart.model_dump(mode="json"))

    return app


def main() -> None:
    """Run the server on :8080."""
    uvicorn.run("catalog.main:create_app", factory=True, host="0.0.0.0", port=8080)


if __name__ == "__main__":
    main()
