"""
Pydantic Schemas - Data Validation Models

Defines request payloads and closed enumerations for every entity:
- Users (registration, profile patch, approval, login)
- Products (create, patch)
- Orders (create, patch, status change)

Usage:
    from utils.schemas import OrderCreate

    order = OrderCreate(**payload)
    patch = OrderUpdate(**payload).model_dump(exclude_unset=True)
"""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[a-zA-Z\d@$!%*?&]{8,}$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE
)


def is_valid_uuid(value: object) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


class Role(str, Enum):
    LEARNER = "learner"
    FOUNDER = "founder"
    EXISTING_FOUNDER = "existing_founder"
    OTHER = "other"
    ADMIN = "admin"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


def sanitize(value: Optional[str]) -> Optional[str]:
    """Strip angle brackets and surrounding whitespace from free text."""
    if value is None:
        return None
    return value.replace("<", "").replace(">", "").strip()


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(_Payload):
    """Registration payload.

    Validates against requirements:
    - first_name/last_name: at least 2 characters
    - email: valid email format, stored lowercase
    - password: 8+ chars with upper, lower and digit (72 bytes max for bcrypt)
    - address: at least 10 characters
    """

    first_name: str = Field(..., min_length=2, max_length=255)
    last_name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., max_length=72)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: str = Field(..., min_length=10)
    zip_code: Optional[str] = Field(default=None, max_length=10)
    role: Role = Field(default=Role.LEARNER.value)

    @field_validator("first_name", "last_name", "address", mode="before")
    @classmethod
    def clean_text(cls, v):
        return sanitize(v) if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        if not PASSWORD_PATTERN.match(v):
            raise ValueError("Password must be at least 8 characters with uppercase, lowercase, and number")
        return v

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not PHONE_PATTERN.match(v):
            raise ValueError("Invalid phone number format")
        return v


class UserUpdate(_Payload):
    """Profile patch; only the fields sent are changed."""

    first_name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, min_length=10)
    zip_code: Optional[str] = Field(default=None, max_length=10)
    profile_pic: Optional[str] = None

    @field_validator("first_name", "last_name", "address", mode="before")
    @classmethod
    def clean_text(cls, v):
        return sanitize(v) if isinstance(v, str) else v

    @field_validator("first_name", "last_name", "address")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not PHONE_PATTERN.match(v):
            raise ValueError("Invalid phone number format")
        return v


class ApprovalUpdate(_Payload):
    is_approved: ApprovalStatus


class LoginRequest(_Payload):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class ProductCreate(_Payload):
    name: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=10)
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=2, max_length=100)
    image_url: Optional[str] = None

    @field_validator("name", "description", "category", mode="before")
    @classmethod
    def clean_text(cls, v):
        return sanitize(v) if isinstance(v, str) else v


class ProductUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, min_length=10)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, min_length=2, max_length=100)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "description", "category", mode="before")
    @classmethod
    def clean_text(cls, v):
        return sanitize(v) if isinstance(v, str) else v

    @field_validator("name", "price", "category", "is_active")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderCreate(_Payload):
    customer_id: str
    product_id: str
    quantity: int = Field(..., gt=0)
    total_amount: float = Field(..., gt=0)
    status: OrderStatus = Field(default=OrderStatus.PENDING.value)
    notes: Optional[str] = None

    @field_validator("customer_id", "product_id")
    @classmethod
    def valid_uuid(cls, v: str) -> str:
        if not is_valid_uuid(v):
            raise ValueError("Invalid ID format")
        return v.lower()


class OrderUpdate(_Payload):
    quantity: Optional[int] = Field(default=None, gt=0)
    total_amount: Optional[float] = Field(default=None, gt=0)
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None

    @field_validator("quantity", "total_amount", "status")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class OrderStatusUpdate(_Payload):
    status: OrderStatus
