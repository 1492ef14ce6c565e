"""Order endpoints. Every route needs a caller; delete is admin only."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from services import orders as order_service
from services.api.deps import admin_only, authenticated, get_store, page_params, parse_id
from utils import responses
from utils.db import Store
from utils.query import PageRequest
from utils.schemas import OrderCreate, OrderStatus, OrderStatusUpdate, OrderUpdate
from utils.security import Identity

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _status(value: Optional[OrderStatus]) -> Optional[str]:
    return value.value if value else None


@router.get("")
def list_orders(
    status: Optional[OrderStatus] = Query(default=None),
    customer_id: Optional[str] = Query(default=None, alias="customerId"),
    product_id: Optional[str] = Query(default=None, alias="productId"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    min_amount: Optional[float] = Query(default=None, alias="minAmount"),
    max_amount: Optional[float] = Query(default=None, alias="maxAmount"),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    page: PageRequest = Depends(page_params),
    store: Store = Depends(get_store),
    _: Identity = Depends(authenticated),
):
    criteria = {
        "status": _status(status),
        "customer_id": parse_id(customer_id, "customer ID") if customer_id else None,
        "product_id": parse_id(product_id, "product ID") if product_id else None,
        "start_date": start_date,
        "end_date": end_date,
        "min_amount": min_amount,
        "max_amount": max_amount,
    }
    rows, info = order_service.list_orders(store, criteria, page, sort_by, sort_order)
    return responses.paginated("orders", rows, info, "Orders retrieved successfully")


@router.get("/statistics")
def order_statistics(
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    status: Optional[OrderStatus] = Query(default=None),
    store: Store = Depends(get_store),
    _: Identity = Depends(authenticated),
):
    criteria = {"start_date": start_date, "end_date": end_date, "status": _status(status)}
    stats = order_service.order_statistics(store, criteria)
    return responses.success(stats, "Order statistics retrieved successfully")


@router.get("/customer/{customer_id}")
def list_orders_by_customer(
    customer_id: str,
    status: Optional[OrderStatus] = Query(default=None),
    page: PageRequest = Depends(page_params),
    store: Store = Depends(get_store),
    _: Identity = Depends(authenticated),
):
    rows, info = order_service.list_orders_by_customer(
        store, parse_id(customer_id, "customer ID"), page, _status(status)
    )
    return responses.paginated("orders", rows, info, "Customer orders retrieved successfully")


@router.get("/product/{product_id}")
def list_orders_by_product(
    product_id: str,
    status: Optional[OrderStatus] = Query(default=None),
    page: PageRequest = Depends(page_params),
    store: Store = Depends(get_store),
    _: Identity = Depends(authenticated),
):
    rows, info = order_service.list_orders_by_product(
        store, parse_id(product_id, "product ID"), page, _status(status)
    )
    return responses.paginated("orders", rows, info, "Product orders retrieved successfully")


@router.get("/{order_id}")
def get_order(order_id: str, store: Store = Depends(get_store), _: Identity = Depends(authenticated)):
    order = order_service.get_order(store, parse_id(order_id, "order ID"))
    return responses.success(order, "Order retrieved successfully")


@router.post("")
def create_order(
    payload: OrderCreate,
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    order = order_service.create_order(store, payload, created_by=identity.id)
    return responses.created(order, "Order created successfully")


@router.put("/{order_id}")
def update_order(
    order_id: str,
    payload: OrderUpdate,
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    order = order_service.update_order(
        store, parse_id(order_id, "order ID"), payload.model_dump(exclude_unset=True), updated_by=identity.id
    )
    return responses.success(order, "Order updated successfully")


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    order = order_service.update_order_status(
        store, parse_id(order_id, "order ID"), payload.status, updated_by=identity.id
    )
    return responses.success(order, "Order status updated successfully")


@router.delete("/{order_id}")
def delete_order(order_id: str, store: Store = Depends(get_store), _: Identity = Depends(admin_only)):
    order_service.delete_order(store, parse_id(order_id, "order ID"))
    return responses.success(None, "Order deleted successfully")
