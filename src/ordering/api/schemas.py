"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), kept separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    name: str
    phone: str
    alternate_phone: str | None = None
    address: str
    landmark: str | None = None
    city: str
    state: str
    pincode: str
    country: str = "India"
    address_type: str = "home"


class CustomizationSchema(BaseModel):
    design: str | None = None
    text: str | None = None
    position_x: float | None = None
    position_y: float | None = None
    font: str | None = None
    text_color: str | None = None
    elements: list[dict[str, Any]] | None = None
    canvas_width: int | None = None
    canvas_height: int | None = None
    preview: str | None = None


class CustomProductSchema(BaseModel):
    product_type: str
    name: str
    base_price: float = Field(ge=0)
    design: str | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str | None = None
    custom_product: CustomProductSchema | None = None
    quantity: int = Field(ge=1, le=10, default=1)
    size: str = "M"
    color: str = "Default"
    customization: CustomizationSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 2,
                    "size": "L",
                    "color": "Black",
                }
            ]
        }
    }


class UpdateCartQuantityRequest(BaseModel):
    # Zero or less removes the line
    quantity: int


class ApplyCouponToCartRequest(BaseModel):
    coupon_code: str


class MergeGuestCartRequest(BaseModel):
    items: list[dict[str, Any]]


class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: str
    notes: str | None = None
    is_gift: bool = False
    gift_message: str | None = None
    source: str = "web"


# ---------------------------------------------------------------------------
# Coupon Request Schemas
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str = Field(max_length=20)
    name: str | None = None
    description: str
    discount_type: str
    discount_value: float = Field(ge=0)
    max_discount_amount: float | None = None
    min_order_amount: float = 0.0
    usage_limit: int | None = Field(default=None, ge=1)
    usage_limit_per_user: int = Field(default=1, ge=1)
    valid_from: datetime
    valid_to: datetime
    is_public: bool = False
    applicable_categories: list[str] = []
    applicable_products: list[str] = []
    excluded_products: list[str] = []
    applicable_users: list[str] = []
    first_order_only: bool = False
    stackable: bool = False
    terms_and_conditions: str | None = None
    created_by: str | None = None


class ValidateCouponRequest(BaseModel):
    code: str
    user_id: str
    cart_total: float = Field(ge=0)
    product_ids: list[str] = []
    categories: list[str] = []


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str
    status_note: str | None = None
    actor: str | None = None


class ActorRequest(BaseModel):
    actor: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str
    cancelled_by: str = "customer"


class ShipOrderRequest(BaseModel):
    weight: float | None = Field(default=None, ge=0)
    actor: str | None = None


class RequestReturnRequest(BaseModel):
    reason: str
    actor: str | None = None


class RefundOrderRequest(BaseModel):
    amount: float | None = Field(default=None, ge=0)
    reason: str | None = None


class InitiatePaymentRequest(BaseModel):
    currency: str = "INR"


class VerifyPaymentRequest(BaseModel):
    transaction_id: str
    signature: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CouponIdResponse(BaseModel):
    coupon_id: str


class PlacedOrderResponse(BaseModel):
    order_id: str
    order_number: str


class AbandonedCartsResponse(BaseModel):
    flagged: int


class StatusResponse(BaseModel):
    status: str = "ok"
