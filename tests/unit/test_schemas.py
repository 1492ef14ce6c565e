"""Tests for request payload validation."""

import pytest
from pydantic import ValidationError

from utils.schemas import (
    OrderCreate,
    OrderUpdate,
    ProductCreate,
    ProductUpdate,
    UserCreate,
    UserUpdate,
    is_valid_uuid,
    sanitize,
)

VALID_USER = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "Ada@Example.com",
    "password": "Secret123",
    "address": "12 Analytical Engine Way",
}

CUSTOMER_ID = "3f2b8c1e-5d4a-4b6c-9e7f-1a2b3c4d5e6f"
PRODUCT_ID = "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d"


class TestUserCreate:
    def test_defaults_and_normalization(self):
        user = UserCreate(**VALID_USER)
        assert user.email == "ada@example.com"
        assert user.role == "learner"

    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "NoDigitsHere"])
    def test_weak_password(self, password):
        with pytest.raises(ValidationError):
            UserCreate(**{**VALID_USER, "password": password})

    def test_bad_phone(self):
        with pytest.raises(ValidationError):
            UserCreate(**{**VALID_USER, "phone": "call me"})

    def test_unknown_role(self):
        with pytest.raises(ValidationError):
            UserCreate(**{**VALID_USER, "role": "superuser"})

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            UserCreate(**{**VALID_USER, "is_approved": "approved"})

    def test_angle_brackets_stripped(self):
        user = UserCreate(**{**VALID_USER, "first_name": "<b>Ada</b>"})
        assert user.first_name == "bAda/b"


class TestUserUpdate:
    def test_only_sent_fields_are_dumped(self):
        patch = UserUpdate(phone="+15551234567").model_dump(exclude_unset=True)
        assert patch == {"phone": "+15551234567"}

    def test_required_column_cannot_be_nulled(self):
        with pytest.raises(ValidationError):
            UserUpdate(first_name=None)

    def test_optional_column_can_be_nulled(self):
        assert UserUpdate(zip_code=None).model_dump(exclude_unset=True) == {"zip_code": None}


class TestProducts:
    def test_negative_price(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="Widget", description="A fine widget", price=-1, category="tools")

    def test_free_product_allowed(self):
        assert ProductCreate(name="Widget", description="A fine widget", price=0, category="tools").price == 0

    def test_update_cannot_null_price(self):
        with pytest.raises(ValidationError):
            ProductUpdate(price=None)


class TestOrders:
    def test_defaults(self):
        order = OrderCreate(customer_id=CUSTOMER_ID.upper(), product_id=PRODUCT_ID, quantity=1, total_amount=9.5)
        assert order.status == "pending"
        assert order.customer_id == CUSTOMER_ID

    @pytest.mark.parametrize("field, value", [("quantity", 0), ("total_amount", 0), ("status", "lost")])
    def test_invalid_values(self, field, value):
        payload = {"customer_id": CUSTOMER_ID, "product_id": PRODUCT_ID, "quantity": 1, "total_amount": 1}
        with pytest.raises(ValidationError):
            OrderCreate(**{**payload, field: value})

    def test_invalid_ids(self):
        with pytest.raises(ValidationError):
            OrderCreate(customer_id="42", product_id=PRODUCT_ID, quantity=1, total_amount=1)

    def test_update_status_dumps_plain_value(self):
        assert OrderUpdate(status="shipped").model_dump(exclude_unset=True) == {"status": "shipped"}


def test_is_valid_uuid():
    assert is_valid_uuid(CUSTOMER_ID)
    assert not is_valid_uuid("not-a-uuid")
    assert not is_valid_uuid(None)


def test_sanitize():
    assert sanitize("  <script>hi ") == "scripthi"
    assert sanitize(None) is None
