"""
Product Service - Catalog CRUD

Product names are unique per creator. Only the creator or an admin may change
or delete a product.
"""

import logging
import uuid
from typing import Any, Mapping, Optional

from utils.db import Store
from utils.errors import Conflict, NotFound
from utils.query import Filter, ListQuery, PageInfo, PageRequest, Statement, compose_update
from utils.schemas import ProductCreate
from utils.security import Identity, ensure_owner_or_admin

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "price", "category", "image_url", "is_active")

PRODUCT_LISTING = ListQuery(
    select=(
        "SELECT p.*, u.first_name AS creator_name, u.last_name AS creator_last_name "
        "FROM products p LEFT JOIN users u ON p.creator_id = u.id"
    ),
    count="SELECT COUNT(*) AS total FROM products p",
    filters=[
        Filter.eq("is_active", "p.is_active"),
        Filter.eq("creator_id", "p.creator_id"),
        Filter.eq("category", "p.category"),
        Filter.contains("search", "p.name", "p.description"),
        Filter.gte("min_price", "p.price"),
        Filter.lte("max_price", "p.price"),
    ],
    sortable={
        "created_at": "p.created_at",
        "updated_at": "p.updated_at",
        "name": "p.name",
        "price": "p.price",
        "category": "p.category",
    },
    tiebreaker="p.rowid",
)


def _present(row: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if row is not None and "is_active" in row:
        row["is_active"] = bool(row["is_active"])
    return row


def list_products(
    store: Store,
    criteria: Mapping[str, Any],
    page: PageRequest,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> tuple[list[dict[str, Any]], PageInfo]:
    rows, info = store.fetch_page(PRODUCT_LISTING, criteria, page, sort_by, sort_order)
    return [_present(row) for row in rows], info


def list_products_by_creator(store: Store, creator_id: str, page: PageRequest) -> tuple[list[dict[str, Any]], PageInfo]:
    return list_products(store, {"creator_id": creator_id}, page)


def get_product(store: Store, product_id: str) -> dict[str, Any]:
    product = store.fetch_one(
        Statement(
            "SELECT p.*, u.first_name AS creator_name, u.last_name AS creator_last_name, "
            "u.email AS creator_email "
            "FROM products p LEFT JOIN users u ON p.creator_id = u.id WHERE p.id = ?1",
            [product_id],
        )
    )
    if product is None:
        raise NotFound("Product not found")
    return _present(product)


def _name_taken(store: Store, name: str, creator_id: str, exclude_id: Optional[str] = None) -> bool:
    existing = store.fetch_one(
        Statement("SELECT id FROM products WHERE name = ?1 AND creator_id = ?2", [name, creator_id])
    )
    return existing is not None and existing["id"] != exclude_id


def create_product(store: Store, data: ProductCreate, creator_id: str) -> dict[str, Any]:
    """
    Raises:
        Conflict: If the creator already has a product with this name
    """
    if _name_taken(store, data.name, creator_id):
        raise Conflict("Product with this name already exists for this creator")

    product = store.fetch_one(
        Statement(
            "INSERT INTO products (id, name, description, price, category, image_url, creator_id) "
            "VALUES (?1, ?2, ?3, ?4, ?5, ?6, ?7) RETURNING *",
            [
                str(uuid.uuid4()),
                data.name,
                data.description,
                data.price,
                data.category,
                data.image_url,
                creator_id,
            ],
        )
    )

    logger.info("Product created", extra={"product_id": product["id"], "creator_id": creator_id})
    return _present(product)


def _owned_product(store: Store, product_id: str, identity: Identity, action: str) -> dict[str, Any]:
    product = store.fetch_one(
        Statement("SELECT id, creator_id, is_active FROM products WHERE id = ?1", [product_id])
    )
    if product is None:
        raise NotFound("Product not found")
    ensure_owner_or_admin(identity, product["creator_id"], action)
    return product


def update_product(store: Store, product_id: str, patch: Mapping[str, Any], identity: Identity) -> dict[str, Any]:
    """
    Raises:
        EmptyPatch: If patch is empty
        NotFound: If the product does not exist
        Forbidden: If the caller is neither creator nor admin
        Conflict: If the new name collides with another of the creator's products
    """
    clause = compose_update(product_id, patch, allowed=UPDATABLE_FIELDS)
    current = _owned_product(store, product_id, identity, "update this product")

    if "name" in patch and _name_taken(store, patch["name"], current["creator_id"], exclude_id=product_id):
        raise Conflict("Product with this name already exists for this creator")

    product = store.fetch_one(clause.statement("products"))
    if product is None:
        raise NotFound("Product not found")

    logger.info("Product updated", extra={"product_id": product_id, "fields": sorted(patch)})
    return _present(product)


def toggle_product_status(store: Store, product_id: str, identity: Identity) -> dict[str, Any]:
    current = _owned_product(store, product_id, identity, "change this product")
    new_status = not bool(current["is_active"])

    clause = compose_update(product_id, {"is_active": new_status})
    product = store.fetch_one(clause.statement("products", returning="id, is_active, updated_at"))
    if product is None:
        raise NotFound("Product not found")

    logger.info("Product status toggled", extra={"product_id": product_id, "is_active": new_status})
    return _present(product)


def delete_product(store: Store, product_id: str, identity: Identity) -> None:
    _owned_product(store, product_id, identity, "delete this product")
    deleted = store.fetch_one(Statement("DELETE FROM products WHERE id = ?1 RETURNING id", [product_id]))
    if deleted is None:
        raise NotFound("Product not found")

    logger.info("Product deleted", extra={"product_id": product_id, "deleted_by": identity.id})
