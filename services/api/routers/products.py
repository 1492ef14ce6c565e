"""Product endpoints. Reads are public; writes need the creator or an admin."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from services import products as product_service
from services.api.deps import authenticated, get_store, page_params, parse_id
from utils import responses
from utils.db import Store
from utils.query import PageRequest
from utils.schemas import ProductCreate, ProductUpdate
from utils.security import Identity

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("")
def list_products(
    category: Optional[str] = Query(default=None),
    creator_id: Optional[str] = Query(default=None, alias="creatorId"),
    search: Optional[str] = Query(default=None),
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    is_active: Optional[bool] = Query(default=True, alias="isActive"),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    page: PageRequest = Depends(page_params),
    store: Store = Depends(get_store),
):
    criteria = {
        "is_active": is_active,
        "creator_id": parse_id(creator_id, "creator ID") if creator_id else None,
        "category": category,
        "search": search,
        "min_price": min_price,
        "max_price": max_price,
    }
    rows, info = product_service.list_products(store, criteria, page, sort_by, sort_order)
    return responses.paginated("products", rows, info, "Products retrieved successfully")


@router.get("/creator/{creator_id}")
def list_products_by_creator(
    creator_id: str,
    page: PageRequest = Depends(page_params),
    store: Store = Depends(get_store),
):
    rows, info = product_service.list_products_by_creator(store, parse_id(creator_id, "creator ID"), page)
    return responses.paginated("products", rows, info, "Products retrieved successfully")


@router.get("/{product_id}")
def get_product(product_id: str, store: Store = Depends(get_store)):
    product = product_service.get_product(store, parse_id(product_id, "product ID"))
    return responses.success(product, "Product retrieved successfully")


@router.post("")
def create_product(
    payload: ProductCreate,
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    product = product_service.create_product(store, payload, creator_id=identity.id)
    return responses.created(product, "Product created successfully")


@router.put("/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdate,
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    product = product_service.update_product(
        store, parse_id(product_id, "product ID"), payload.model_dump(exclude_unset=True), identity
    )
    return responses.success(product, "Product updated successfully")


@router.patch("/{product_id}/toggle-status")
def toggle_product_status(
    product_id: str,
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    product = product_service.toggle_product_status(store, parse_id(product_id, "product ID"), identity)
    return responses.success(product, "Product status updated successfully")


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    product_service.delete_product(store, parse_id(product_id, "product ID"), identity)
    return responses.success(None, "Product deleted successfully")
