from typing import Any, Dict, List, Optional, Tuple
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from uuid6 import uuid7
from pizzaport.auth.dependencies import SessionUser
from pizzaport.common.constants import PAISE_PER_RUPEE
from pizzaport.config.settings import Settings
from pizzaport.coupons.models import normalize_code
from pizzaport.coupons.repository import increment_coupon_usage
from pizzaport.coupons.services import validate_coupon
from pizzaport.menu.repository import fetch_menu_items_by_ids
from pizzaport.orders.constants import logger
from pizzaport.orders.models import CartLineIn, CheckoutOrderIn, VerifyPaymentIn
from pizzaport.orders.repository import (claim_coupon_usage, get_order_by_razorpay_id, insert_order,
                                         mark_order_canceled, mark_payment_captured, mark_payment_failed,
                                         mark_payment_verified, set_fulfillment_status)
from pizzaport.orders.utils import (can_transition, compute_integrity_token, compute_order_totals,
                                    effective_unit_price, group_cart_lines, integrity_token_matches, is_terminal)
from pizzaport.payments.gateway import PaymentGatewayError, RazorpayGateway, verify_payment_signature
from pizzaport.schema.full_schema import MenuItem, Orders, OrderStatus, PaymentStatus


# --------------------------------------------------------------------------------------------
# cart resolution and pricing

def _pick_option(options: List[Dict[str, Any]], name: str) -> Dict[str, Any]:
    for opt in options or []:
        if opt.get("name") == name:
            return {"name": opt["name"], "extra_price": int(opt.get("extra_price", 0) or 0)}
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid option")


def snapshot_line(item: MenuItem, line: CartLineIn) -> Dict[str, Any]:
    return {
        "product_id": item.id,
        "name": item.name,
        "unit_price": effective_unit_price(item.base_price, item.discount_price),
        "size": _pick_option(item.size_options, line.size) if line.size else None,
        "extras": [_pick_option(item.extra_ingredients, name) for name in line.extras],
        "image_url": item.image_url,
    }


async def resolve_cart_lines(session, lines: List[CartLineIn]) -> List[Dict[str, Any]]:
    """Rebuild every client cart line from the menu , client prices are never trusted."""
    items = await fetch_menu_items_by_ids(session, [line.product_id for line in lines])
    resolved = []
    for line in lines:
        item = items.get(line.product_id)
        if item is None:
            logger.warning("checkout.cart.unknown_item", extra={"product_id": line.product_id})
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Menu item not found")
        resolved.append(snapshot_line(item, line))
    return resolved


async def price_cart(session, lines: List[Dict[str, Any]],
                     coupon_code: Optional[str]) -> Tuple[Dict[str, int], Optional[str]]:
    totals = compute_order_totals(lines)
    code = normalize_code(coupon_code)
    if not code:
        return totals, None

    result = await validate_coupon(session, code, totals["subtotal"])
    if not result.valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
    return compute_order_totals(lines, result.discount), code


# --------------------------------------------------------------------------------------------
# order creation

async def create_checkout_order(session, gateway: RazorpayGateway, settings: Settings,
                                payload: CheckoutOrderIn, user: Optional[SessionUser]) -> Dict[str, Any]:

    lines = await resolve_cart_lines(session, payload.cart)
    totals, coupon_code = await price_cart(session, lines, payload.coupon_code)

    email = user.email if user and user.email else str(payload.email)
    public_id = uuid7()

    try:
        remote = await gateway.create_order(
            amount_paise=totals["total"] * PAISE_PER_RUPEE,
            currency=settings.CURRENCY,
            receipt=str(public_id),
            notes={"order_public_id": str(public_id)},
        )
    except PaymentGatewayError as ex:
        logger.error("checkout.gateway.create_failed", extra={"order": str(public_id), "error": str(ex),
                                                              "http_status": ex.status_code})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Payment gateway unavailable")

    razorpay_order_id = remote["session_id"]
    integrity_token = compute_integrity_token(lines, totals["total"])

    values = {
        "public_id": public_id,
        "razorpay_order_id": razorpay_order_id,
        "user_id": user.user_id if user else None,
        "user_name": payload.name,
        "user_email": email,
        "address": payload.address,
        "cart": lines,
        "subtotal": totals["subtotal"],
        "tax": totals["tax"],
        "delivery_fee": totals["delivery_fee"],
        "coupon_code": coupon_code,
        "discount_amount": totals["discount"],
        "total": totals["total"],
        "currency": settings.CURRENCY,
        "integrity_token": integrity_token,
        "payment_status": PaymentStatus.PENDING.value,
        "status": OrderStatus.PLACED.value,
    }

    try:
        await insert_order(session, values)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        # the gateway order exists without a row , needs manual reconciliation
        logger.exception("order.persist.reconciliation_required",
                         extra={"razorpay_order_id": razorpay_order_id, "order": str(public_id),
                                "total": totals["total"], "email": email})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save order")

    logger.info("checkout.order.created", extra={"order": str(public_id), "razorpay_order_id": razorpay_order_id,
                                                 "total": totals["total"], "coupon_code": coupon_code})

    return {
        "order_id": str(public_id),
        "razorpay_order_id": razorpay_order_id,
        "amount": remote["amount"],
        "currency": remote["currency"],
        "key_id": settings.RAZORPAY_KEY_ID,
        "integrity_token": integrity_token,
        **totals,
    }


# --------------------------------------------------------------------------------------------
# payment confirmation

async def record_coupon_usage_once(session, order_id: int, coupon_code: Optional[str]) -> bool:
    """Count the coupon for this order at most once , whichever confirmation path gets here first."""
    if not coupon_code:
        return False
    if not await claim_coupon_usage(session, order_id):
        return False
    touched = await increment_coupon_usage(session, coupon_code)
    if not touched:
        logger.warning("coupon.usage.coupon_missing", extra={"order_id": order_id, "code": coupon_code})
    return True


async def verify_client_payment(session, settings: Settings, payload: VerifyPaymentIn) -> Orders:

    if not verify_payment_signature(payload.razorpay_order_id, payload.razorpay_payment_id,
                                    payload.razorpay_signature, settings.RAZORPAY_SECRET_KEY):
        logger.warning("payment.verify.invalid_signature",
                       extra={"razorpay_order_id": payload.razorpay_order_id,
                              "razorpay_payment_id": payload.razorpay_payment_id, "suspected": "fraud"})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    order = await get_order_by_razorpay_id(session, payload.razorpay_order_id)
    if not order:
        logger.warning("payment.verify.order_not_found", extra={"razorpay_order_id": payload.razorpay_order_id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    if not integrity_token_matches(payload.integrity_token, order.integrity_token, order.cart, order.total):
        logger.error("payment.verify.tampering_detected",
                     extra={"razorpay_order_id": order.razorpay_order_id, "order": str(order.public_id)})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order tampering detected")

    await mark_payment_verified(session, order.id, payload.razorpay_payment_id)
    counted = await record_coupon_usage_once(session, order.id, order.coupon_code)
    await session.commit()
    await session.refresh(order)

    logger.info("payment.verify.success", extra={"razorpay_order_id": order.razorpay_order_id,
                                                 "payment_status": order.payment_status,
                                                 "coupon_counted": counted})
    return order


async def apply_payment_captured(session, razorpay_order_id: str) -> Optional[Orders]:
    order = await get_order_by_razorpay_id(session, razorpay_order_id)
    if not order:
        return None
    await mark_payment_captured(session, order.id)
    await record_coupon_usage_once(session, order.id, order.coupon_code)
    await session.commit()
    await session.refresh(order)
    return order


async def apply_payment_failed(session, razorpay_order_id: str) -> Optional[Orders]:
    order = await get_order_by_razorpay_id(session, razorpay_order_id)
    if not order:
        return None
    await mark_payment_failed(session, order.id)
    await session.commit()
    await session.refresh(order)
    return order


# --------------------------------------------------------------------------------------------
# fulfillment back office

async def cancel_order(session, order: Orders) -> Orders:
    if is_terminal(order.status):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Order already {order.status}")

    if not await mark_order_canceled(session, order.id):
        # finished or canceled by someone else in the meantime
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order can no longer be canceled")
    await session.commit()
    await session.refresh(order)
    return order


async def change_order_status(session, order: Orders, target: str) -> Orders:
    if target == OrderStatus.CANCELED.value:
        return await cancel_order(session, order)

    if not can_transition(order.status, target):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Order already {order.status}")

    if not await set_fulfillment_status(session, order.id, target):
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order can no longer be updated")
    await session.commit()
    await session.refresh(order)
    return order


# --------------------------------------------------------------------------------------------
# response shapes

def order_summary_out(order: Orders) -> Dict[str, Any]:
    return {
        "order_id": str(order.public_id),
        "razorpay_order_id": order.razorpay_order_id,
        "total": order.total,
        "currency": order.currency,
        "items_count": len(order.cart or []),
        "payment_status": order.payment_status,
        "status": order.status,
        "created_at": order.created_at,
    }


def order_detail_out(order: Orders) -> Dict[str, Any]:
    return {
        **order_summary_out(order),
        "user_name": order.user_name,
        "user_email": order.user_email,
        "address": order.address,
        "items": group_cart_lines(order.cart or []),
        "subtotal": order.subtotal,
        "tax": order.tax,
        "delivery_fee": order.delivery_fee,
        "coupon_code": order.coupon_code,
        "discount": order.discount_amount,
        "razorpay_payment_id": order.razorpay_payment_id,
        "verified_at": order.verified_at,
        "canceled_at": order.canceled_at,
    }


def order_admin_out(order: Orders) -> Dict[str, Any]:
    return {
        **order_detail_out(order),
        "user_id": order.user_id,
        "webhook_received": order.webhook_received,
        "coupon_usage_recorded": order.coupon_usage_recorded,
        "updated_at": order.updated_at,
    }
