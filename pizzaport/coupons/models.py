from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from pizzaport.schema.full_schema import DiscountType


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


class CouponCreateIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    discount_type: DiscountType
    discount_value: int = Field(..., ge=0)
    min_order_value: Optional[int] = Field(None, ge=0)
    max_discount: Optional[int] = Field(None, ge=0)
    expiry_date: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, ge=0)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _upper_code(cls, v: str) -> str:
        v = normalize_code(v)
        if not v:
            raise ValueError("Code is required")
        return v

    @model_validator(mode="after")
    def _percentage_bounds(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class CouponUpdateIn(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[int] = Field(None, ge=0)
    min_order_value: Optional[int] = Field(None, ge=0)
    max_discount: Optional[int] = Field(None, ge=0)
    expiry_date: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    # usage_count only moves with confirmed orders
    model_config = {"extra": "forbid"}

    @field_validator("code")
    @classmethod
    def _upper_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = normalize_code(v)
        if not v:
            raise ValueError("Code is required")
        return v


class CouponValidateIn(BaseModel):
    code: str = Field(..., min_length=1, description="Please enter a coupon code")
    subtotal: int = Field(..., gt=0)


@dataclass
class CouponValidation:
    valid: bool
    discount: int
    message: str
    coupon: Optional[Dict[str, Any]] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "discount": self.discount, "message": self.message, "coupon": self.coupon}
