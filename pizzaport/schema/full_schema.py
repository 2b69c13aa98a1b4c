import enum
import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Index, Integer, Text, Uuid, text
from uuid6 import uuid7
from sqlmodel import Column, SQLModel, Field, String
from pizzaport.common.utils import now


# --------------------------------------------------------------------------------------------
# MENU

class MenuItem(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(default_factory=uuid7, sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False))
    name: str = Field(sa_column=Column(String(255), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    base_price: int = Field(sa_column=Column(BigInteger, nullable=False))  # rs
    discount_price: Optional[int] = Field(default=None, sa_column=Column(BigInteger, nullable=True))
    category: str = Field(default="", sa_column=Column(String(128), nullable=False, index=True))
    size_options: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))       # [{"name","extra_price"}]
    extra_ingredients: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))  # [{"name","extra_price"}]
    image_url: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))  # media store url
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))


# --------------------------------------------------------------------------------------------
# COUPONS

class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Coupon(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(default_factory=uuid7, sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False))
    code: str = Field(sa_column=Column(String(64), unique=True, index=True, nullable=False))  # always upper case
    discount_type: str = Field(sa_column=Column(String(16), nullable=False))
    discount_value: int = Field(sa_column=Column(BigInteger, nullable=False))
    min_order_value: Optional[int] = Field(default=None, sa_column=Column(BigInteger, nullable=True))
    max_discount: Optional[int] = Field(default=None, sa_column=Column(BigInteger, nullable=True))  # percentage coupons only
    expiry_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    usage_limit: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True))
    usage_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default=text("0")))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, server_default=text("true")))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))

    __table_args__ = (
        Index("ix_coupon_code_active", "code", "is_active"),
    )


# --------------------------------------------------------------------------------------------
# ORDERS

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUND_INITIATED = "refund_initiated"


class OrderStatus(str, enum.Enum):
    PLACED = "placed"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    COMPLETED = "completed"
    CANCELED = "canceled"


# one row per checkout attempt , razorpay_order_id joins the client callback and the webhook
class Orders(SQLModel, table=True):

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: uuid.UUID = Field(default_factory=uuid7, sa_column=Column(Uuid(as_uuid=True), unique=True, index=True, nullable=False))
    razorpay_order_id: str = Field(sa_column=Column(String(128), unique=True, index=True, nullable=False))
    razorpay_payment_id: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))

    # buyer snapshot
    user_id: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True, index=True))  # auth provider subject , null for guests
    user_name: str = Field(sa_column=Column(String(255), nullable=False))
    user_email: str = Field(sa_column=Column(String(320), nullable=False, index=True))
    address: str = Field(sa_column=Column(Text, nullable=False))

    # immutable line item snapshot , quantity = repeated entries
    cart: List[dict] = Field(sa_column=Column(JSON, nullable=False))

    # pricing snapshot (rs)
    subtotal: int = Field(default=0, sa_column=Column(BigInteger, nullable=False))
    tax: int = Field(default=0, sa_column=Column(BigInteger, nullable=False))
    delivery_fee: int = Field(default=0, sa_column=Column(BigInteger, nullable=False))
    coupon_code: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    discount_amount: int = Field(default=0, sa_column=Column(BigInteger, nullable=False))
    total: int = Field(default=0, sa_column=Column(BigInteger, nullable=False))
    currency: str = Field(default="INR", sa_column=Column(String(8), nullable=False))

    integrity_token: str = Field(sa_column=Column(String(64), nullable=False))

    payment_status: str = Field(default=PaymentStatus.PENDING.value, sa_column=Column(String(32), nullable=False, index=True))
    status: Optional[str] = Field(default=OrderStatus.PLACED.value, sa_column=Column(String(32), nullable=True, index=True))

    webhook_received: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, server_default=text("false")))
    coupon_usage_recorded: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, server_default=text("false")))

    verified_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    canceled_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=now, sa_column=Column(DateTime(timezone=True), nullable=False, default=now, index=True))
    updated_at: datetime = Field(default_factory=now,sa_column=Column(DateTime(timezone=True), nullable=False,default=now, onupdate=now))
