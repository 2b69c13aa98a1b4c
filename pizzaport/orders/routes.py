from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from pizzaport.auth.dependencies import SessionUser, get_optional_user, require_admin, require_user_email
from pizzaport.common.utils import success_response, validate_uuid
from pizzaport.db.dependencies import get_session
from pizzaport.orders.constants import USER_ORDERS_LIMIT, logger
from pizzaport.orders.models import CheckoutOrderIn, OrderStatusUpdateIn, VerifyPaymentIn
from pizzaport.orders.repository import fetch_orders, fetch_user_orders, find_order_by_pid, find_user_order
from pizzaport.orders.services import (cancel_order, change_order_status, create_checkout_order, order_admin_out,
                                       order_detail_out, order_summary_out, verify_client_payment)
from pizzaport.payments.gateway import RazorpayGateway, get_payment_gateway
from pizzaport.schema.full_schema import OrderStatus, PaymentStatus

checkout_router=APIRouter()
user_orders_router=APIRouter()
orders_admin_router=APIRouter()


# guest checkout allowed , a bearer token only pins the buyer identity
@checkout_router.post("/orders")
async def create_order(request: Request, payload: CheckoutOrderIn,
                       user: Optional[SessionUser] = Depends(get_optional_user),
                       gateway: RazorpayGateway = Depends(get_payment_gateway),
                       session: AsyncSession = Depends(get_session)):

    logger.info("checkout.order.attempt", extra={"lines": len(payload.cart), "user_id": user.user_id if user else None})
    data = await create_checkout_order(session, gateway, request.app.state.settings, payload, user)
    return success_response(data, status_code=status.HTTP_201_CREATED)


@checkout_router.post("/verify")
async def verify_payment(request: Request, payload: VerifyPaymentIn,
                         session: AsyncSession = Depends(get_session)):

    order = await verify_client_payment(session, request.app.state.settings, payload)
    return success_response({
        "message": "Payment verified",
        "order_id": str(order.public_id),
        "razorpay_order_id": order.razorpay_order_id,
        "payment_status": order.payment_status,
        "status": order.status,
    })


@user_orders_router.get("")
async def my_orders(user: SessionUser = Depends(require_user_email),
                    session: AsyncSession = Depends(get_session)):
    orders = await fetch_user_orders(session, user.email, USER_ORDERS_LIMIT)
    return success_response({"orders": [order_summary_out(o) for o in orders]})


@user_orders_router.get("/{razorpay_order_id}")
async def my_order_detail(razorpay_order_id: str,
                          user: SessionUser = Depends(require_user_email),
                          session: AsyncSession = Depends(get_session)):
    order = await find_user_order(session, razorpay_order_id, user.email)
    return success_response({"order": order_detail_out(order)})


@user_orders_router.get("/{razorpay_order_id}/status")
async def my_order_status(razorpay_order_id: str,
                          user: SessionUser = Depends(require_user_email),
                          session: AsyncSession = Depends(get_session)):
    order = await find_user_order(session, razorpay_order_id, user.email)
    return success_response({"status": order.status, "payment_status": order.payment_status})


@orders_admin_router.get("")
async def admin_list_orders(order_status: Optional[OrderStatus] = Query(None, alias="status"),
                            payment_status: Optional[PaymentStatus] = Query(None),
                            limit: int = Query(50, ge=1, le=200),
                            offset: int = Query(0, ge=0),
                            admin: SessionUser = Depends(require_admin),
                            session: AsyncSession = Depends(get_session)):
    orders = await fetch_orders(session,
                                order_status.value if order_status else None,
                                payment_status.value if payment_status else None,
                                limit, offset)
    return success_response({"orders": [order_admin_out(o) for o in orders]})


@orders_admin_router.get("/{public_id}")
async def admin_order_detail(public_id: str = Depends(validate_uuid),
                             admin: SessionUser = Depends(require_admin),
                             session: AsyncSession = Depends(get_session)):
    order = await find_order_by_pid(session, public_id)
    return success_response({"order": order_admin_out(order)})


@orders_admin_router.patch("/{public_id}/status")
async def admin_update_order_status(payload: OrderStatusUpdateIn,
                                    public_id: str = Depends(validate_uuid),
                                    admin: SessionUser = Depends(require_admin),
                                    session: AsyncSession = Depends(get_session)):
    order = await find_order_by_pid(session, public_id)
    previous = order.status
    order = await change_order_status(session, order, payload.status.value)

    logger.info("order.status.updated", extra={"order": public_id, "from_status": previous,
                                               "to_status": order.status, "user_id": admin.user_id})
    return success_response({"message": "order status updated", "order": order_admin_out(order)})


@orders_admin_router.patch("/{public_id}/cancel")
async def admin_cancel_order(public_id: str = Depends(validate_uuid),
                             admin: SessionUser = Depends(require_admin),
                             session: AsyncSession = Depends(get_session)):
    order = await find_order_by_pid(session, public_id)
    order = await cancel_order(session, order)

    logger.info("order.cancel.success", extra={"order": public_id, "payment_status": order.payment_status,
                                               "user_id": admin.user_id})
    return success_response({"message": "order canceled", "order": order_admin_out(order)})
