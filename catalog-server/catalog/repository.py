"""
Read-only access to the `products` table.

Queries are built with SQLAlchemy Core from a QuerySpec, so every filter
value travels as a bound parameter. Array columns are selected cast to text
and decoded with ArrayCodec; one undecodable row fails the whole call.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy import Select, Text, and_, any_, cast, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from catalog.array_codec import ArrayCodec
from catalog.context import Deadline, check_deadline
from catalog.errors import ExecutionError, FormatError, NotFoundError
from catalog.models import Product as ProductRow
from catalog.query_compiler import (
    CategoryMembershipPredicate,
    Predicate,
    QuerySpec,
    SortKey,
    SubstringPredicate,
    TextField,
)
from catalog.schemas import Product

logger = logging.getLogger("catalog.repository")

_TEXT_COLUMNS = {
    TextField.NAME: ProductRow.name,
    TextField.REFERENCED_NAME: ProductRow.referenced_name,
}

_ORDER_BY = {
    SortKey.PRICE_ASC: ProductRow.price.asc(),
    SortKey.PRICE_DESC: ProductRow.price.desc(),
    SortKey.DATE_ASC: ProductRow.date_added.asc(),
    SortKey.DATE_DESC: ProductRow.date_added.desc(),
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _base_select() -> Select:
    return select(
        ProductRow.id,
        ProductRow.name,
        ProductRow.price,
        ProductRow.description,
        cast(ProductRow.categories, Text).label("categories"),
        cast(ProductRow.images, Text).label("images"),
        ProductRow.referenced_name,
        ProductRow.date_added,
    )


def _predicate_clause(predicate: Predicate):
    if isinstance(predicate, SubstringPredicate):
        column = _TEXT_COLUMNS[predicate.field]
        return column.ilike(f"%{_escape_like(predicate.value)}%", escape="\\")
    if isinstance(predicate, CategoryMembershipPredicate):
        return or_(*(category == any_(ProductRow.categories) for category in predicate.categories))
    raise TypeError(f"unsupported predicate: {predicate!r}")


def build_select(spec: QuerySpec) -> Select:
    """
    SELECT for a product listing.

    Predicates are AND-combined in composition order; the category group is
    an OR of `:category = ANY(categories)` checks. Ties on the sort key are
    broken by id so the order is stable.
    """
    stmt = _base_select()
    clauses = [_predicate_clause(p) for p in spec.predicates]
    if clauses:
        stmt = stmt.where(and_(*clauses))
    return stmt.order_by(_ORDER_BY[spec.sort_key], ProductRow.id.asc())


def build_select_by_id(product_id: int) -> Select:
    return _base_select().where(ProductRow.id == product_id)


def statement_timeout_for(deadline: Deadline) -> Select:
    """
    `set_config('statement_timeout', <ms>, true)` for the time left on `deadline`.

    SET cannot take bind parameters, set_config can. At least 1ms, since 0
    would disable the timeout.
    """
    timeout_ms = max(int(deadline.remaining() * 1000), 1)
    return select(func.set_config("statement_timeout", str(timeout_ms), True))


def row_to_product(row: Mapping[str, Any]) -> Product:
    """Assemble a Product from a result row; raises FormatError on bad arrays."""
    return Product(
        id=row["id"],
        name=row["name"] or "",
        price=row["price"] if row["price"] is not None else 0.0,
        description=row["description"] or "",
        categories=ArrayCodec.decode(row["categories"]),
        images=ArrayCodec.decode(row["images"]),
        referenced_name=row["referenced_name"] or "",
        date_added=row["date_added"],
    )


class ProductRepository:
    """
    Executes product queries against an injected SQLAlchemy engine.
    Holds no state between calls besides the shared engine.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def find(self, spec: QuerySpec, deadline: Optional[Deadline] = None) -> List[Product]:
        """Products matching `spec`, in its sort order. May be empty."""
        rows = self._fetch_all(build_select(spec), "find", deadline)
        try:
            return [row_to_product(row) for row in rows]
        except FormatError as e:
            logger.error("products query returned an undecodable row: %s", e)
            raise ExecutionError("failed to decode product row") from e

    def find_by_id(self, product_id: int, deadline: Optional[Deadline] = None) -> Product:
        """The product with `product_id`; NotFoundError if there is none."""
        rows = self._fetch_all(build_select_by_id(product_id), "find_by_id", deadline)
        if not rows:
            raise NotFoundError(f"product {product_id} not found")
        try:
            return row_to_product(rows[0])
        except FormatError as e:
            logger.error("product %s has an undecodable row: %s", product_id, e)
            raise ExecutionError("failed to decode product row") from e

    def ping(self) -> bool:
        """Check if the product store is reachable."""
        try:
            with self._engine.connect() as conn:
                conn.execute(select(1))
            return True
        except SQLAlchemyError:
            return False

    def _fetch_all(self, stmt: Select, operation: str, deadline: Optional[Deadline]) -> List[Mapping[str, Any]]:
        check_deadline(deadline, operation)
        try:
            with self._engine.connect() as conn:
                if deadline is not None:
                    # Transaction-local; rolled back with the connection's implicit transaction
                    conn.execute(statement_timeout_for(deadline))
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            logger.error("products %s query failed: %s", operation, e)
            raise ExecutionError(f"products {operation} query failed") from e
        check_deadline(deadline, operation)
        return rows
