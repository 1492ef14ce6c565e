"""
Order Service - Orders with Filtering, Pagination and Sorting

Orders reference an existing customer (user) and product; both are checked
before the insert. Every change stamps `updated_by` with the caller.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from utils.db import Store
from utils.errors import EmptyPatch, NotFound
from utils.query import (
    Filter,
    FilterClauseBuilder,
    ListQuery,
    PageInfo,
    PageRequest,
    Statement,
    compose_update,
)
from utils.schemas import OrderCreate, OrderStatus

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("quantity", "total_amount", "status", "notes", "updated_by")

ORDER_COLUMNS = (
    "o.id, o.customer_id, o.product_id, o.quantity, o.total_amount, o.status, o.notes, "
    "o.created_by, o.updated_by, o.created_at, o.updated_at"
)
CUSTOMER_COLUMNS = (
    "u.first_name AS customer_first_name, u.last_name AS customer_last_name, u.email AS customer_email"
)
PRODUCT_COLUMNS = (
    "p.name AS product_name, p.description AS product_description, "
    "p.price AS product_price, p.category AS product_category"
)
ORDER_JOINS = (
    "FROM orders o "
    "LEFT JOIN users u ON o.customer_id = u.id "
    "LEFT JOIN products p ON o.product_id = p.id"
)

ORDER_FILTERS = [
    Filter.eq("status", "o.status"),
    Filter.eq("customer_id", "o.customer_id"),
    Filter.eq("product_id", "o.product_id"),
    Filter.gte("start_date", "o.created_at"),
    Filter.lte("end_date", "o.created_at"),
    Filter.gte("min_amount", "o.total_amount"),
    Filter.lte("max_amount", "o.total_amount"),
]

ORDER_LISTING = ListQuery(
    select=f"SELECT {ORDER_COLUMNS}, {CUSTOMER_COLUMNS}, {PRODUCT_COLUMNS} {ORDER_JOINS}",
    count="SELECT COUNT(*) AS total FROM orders o",
    filters=ORDER_FILTERS,
    sortable={
        "created_at": "o.created_at",
        "updated_at": "o.updated_at",
        "total_amount": "o.total_amount",
        "quantity": "o.quantity",
        "status": "o.status",
    },
    tiebreaker="o.rowid",
)

DATE_CRITERIA = ("start_date", "end_date")

STATISTICS_FILTERS = FilterClauseBuilder(
    [
        Filter.gte("start_date", "created_at"),
        Filter.lte("end_date", "created_at"),
        Filter.eq("status", "status"),
    ]
)


def db_timestamp(value: Any) -> Any:
    """Format a date bound like SQLite's CURRENT_TIMESTAMP: UTC, `YYYY-MM-DD HH:MM:SS`."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d 00:00:00")
    return value


def _with_db_dates(criteria: Mapping[str, Any]) -> dict[str, Any]:
    return {key: db_timestamp(value) if key in DATE_CRITERIA else value for key, value in criteria.items()}


def list_orders(
    store: Store,
    criteria: Mapping[str, Any],
    page: PageRequest,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> tuple[list[dict[str, Any]], PageInfo]:
    return store.fetch_page(ORDER_LISTING, _with_db_dates(criteria), page, sort_by, sort_order)


def list_orders_by_customer(
    store: Store, customer_id: str, page: PageRequest, status: Optional[str] = None
) -> tuple[list[dict[str, Any]], PageInfo]:
    return list_orders(store, {"customer_id": customer_id, "status": status}, page)


def list_orders_by_product(
    store: Store, product_id: str, page: PageRequest, status: Optional[str] = None
) -> tuple[list[dict[str, Any]], PageInfo]:
    return list_orders(store, {"product_id": product_id, "status": status}, page)


def get_order(store: Store, order_id: str) -> dict[str, Any]:
    order = store.fetch_one(
        Statement(
            f"SELECT {ORDER_COLUMNS}, {CUSTOMER_COLUMNS}, {PRODUCT_COLUMNS} {ORDER_JOINS} WHERE o.id = ?1",
            [order_id],
        )
    )
    if order is None:
        raise NotFound("Order not found")
    return order


def create_order(store: Store, data: OrderCreate, created_by: str) -> dict[str, Any]:
    """
    Raises:
        NotFound: If the customer or the product does not exist
    """
    if store.fetch_one(Statement("SELECT id FROM users WHERE id = ?1", [data.customer_id])) is None:
        raise NotFound("Customer not found")
    if store.fetch_one(Statement("SELECT id FROM products WHERE id = ?1", [data.product_id])) is None:
        raise NotFound("Product not found")

    order = store.fetch_one(
        Statement(
            "INSERT INTO orders (id, customer_id, product_id, quantity, total_amount, status, notes, created_by) "
            "VALUES (?1, ?2, ?3, ?4, ?5, ?6, ?7, ?8) RETURNING *",
            [
                str(uuid.uuid4()),
                data.customer_id,
                data.product_id,
                data.quantity,
                data.total_amount,
                data.status,
                data.notes,
                created_by,
            ],
        )
    )

    logger.info(
        "Order created",
        extra={"order_id": order["id"], "customer_id": data.customer_id, "product_id": data.product_id},
    )
    return order


def update_order(store: Store, order_id: str, patch: Mapping[str, Any], updated_by: str) -> dict[str, Any]:
    """
    Raises:
        EmptyPatch: If patch is empty (the updated_by stamp does not count)
        NotFound: If the order does not exist
    """
    if not patch:
        raise EmptyPatch()

    clause = compose_update(order_id, {**patch, "updated_by": updated_by}, allowed=UPDATABLE_FIELDS)
    order = store.fetch_one(clause.statement("orders"))
    if order is None:
        raise NotFound("Order not found")

    logger.info("Order updated", extra={"order_id": order_id, "fields": sorted(patch), "updated_by": updated_by})
    return order


def update_order_status(store: Store, order_id: str, status: str, updated_by: str) -> dict[str, Any]:
    order = update_order(store, order_id, {"status": status}, updated_by)
    logger.info("Order status changed", extra={"order_id": order_id, "status": status})
    return order


def delete_order(store: Store, order_id: str) -> dict[str, Any]:
    order = store.fetch_one(Statement("DELETE FROM orders WHERE id = ?1 RETURNING *", [order_id]))
    if order is None:
        raise NotFound("Order not found")

    logger.info("Order deleted", extra={"order_id": order_id})
    return order


def order_statistics(store: Store, criteria: Mapping[str, Any]) -> dict[str, Any]:
    """Per-status counts and revenue figures over the filtered orders."""
    where = STATISTICS_FILTERS.build(_with_db_dates(criteria))
    status_counts = ", ".join(
        f"COUNT(CASE WHEN status = '{status.value}' THEN 1 END) AS {status.value}_orders"
        for status in OrderStatus
    )
    stats = store.fetch_one(
        Statement(
            f"SELECT COUNT(*) AS total_orders, {status_counts}, "
            "COALESCE(SUM(total_amount), 0) AS total_revenue, "
            "AVG(total_amount) AS average_order_value, "
            "MIN(created_at) AS first_order_date, MAX(created_at) AS last_order_date "
            f"FROM orders WHERE {where.sql}",
            where.params,
        )
    )
    return stats or {}
