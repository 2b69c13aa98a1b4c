from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator
from pizzaport.schema.full_schema import OrderStatus


class CartLineIn(BaseModel):
    product_id: int = Field(..., ge=1)
    size: Optional[str] = None           # size option name
    extras: List[str] = Field(default_factory=list)  # extra ingredient names


class CheckoutOrderIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    address: str = Field(..., min_length=5)
    cart: List[CartLineIn] = Field(..., min_length=1)
    coupon_code: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("address")
    @classmethod
    def _strip_address(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 5:
            raise ValueError("Address must be at least 5 characters")
        return v


class VerifyPaymentIn(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    integrity_token: str = Field(..., min_length=1)


class OrderStatusUpdateIn(BaseModel):
    status: OrderStatus
