from decimal import Decimal
from typing import Any, Dict, Optional
from pizzaport.common.utils import as_utc, now, round_half_up
from pizzaport.coupons.constants import (MSG_APPLIED, MSG_EXPIRED, MSG_LIMIT_REACHED, MSG_MIN_ORDER,
                                         MSG_NOT_FOUND, logger)
from pizzaport.coupons.models import CouponValidation, normalize_code
from pizzaport.coupons.repository import get_coupon_by_code
from pizzaport.schema.full_schema import Coupon, DiscountType


def compute_discount(coupon: Coupon, subtotal: int) -> int:
    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        discount = round_half_up(Decimal(subtotal) * Decimal(coupon.discount_value) / Decimal(100))
        if coupon.max_discount is not None:
            discount = min(discount, int(coupon.max_discount))
        return discount
    return min(int(coupon.discount_value), subtotal)


def coupon_summary(coupon: Coupon) -> Dict[str, Any]:
    return {
        "code": coupon.code,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "max_discount": coupon.max_discount,
        "min_order_value": coupon.min_order_value,
    }


def remaining_uses(coupon: Coupon) -> Optional[int]:
    if coupon.usage_limit is None:
        return None
    return max(0, coupon.usage_limit - (coupon.usage_count or 0))


def check_coupon(coupon: Optional[Coupon], subtotal: int) -> CouponValidation:
    """Apply the coupon rules in order , the first failing rule decides the message."""
    if coupon is None or not coupon.is_active:
        return CouponValidation(False, 0, MSG_NOT_FOUND)

    expiry = as_utc(coupon.expiry_date)
    if expiry is not None and expiry < now():
        return CouponValidation(False, 0, MSG_EXPIRED)

    if coupon.usage_limit is not None and (coupon.usage_count or 0) >= coupon.usage_limit:
        return CouponValidation(False, 0, MSG_LIMIT_REACHED)

    if coupon.min_order_value is not None and subtotal < coupon.min_order_value:
        return CouponValidation(False, 0, MSG_MIN_ORDER.format(min_order=coupon.min_order_value))

    discount = compute_discount(coupon, subtotal)
    return CouponValidation(True, discount, MSG_APPLIED.format(discount=discount), coupon_summary(coupon))


async def validate_coupon(session, code: str, subtotal: int) -> CouponValidation:
    """Read only , usage_count is left to payment confirmation."""
    normalized = normalize_code(code)
    coupon = await get_coupon_by_code(session, normalized) if normalized else None
    result = check_coupon(coupon, subtotal)

    logger.info("coupon.validate", extra={"code": normalized, "subtotal": subtotal,
                                          "valid": result.valid, "discount": result.discount})
    return result
