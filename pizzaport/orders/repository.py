from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status
from sqlalchemy import case, desc, func, or_, select, update
from pizzaport.common.utils import now, to_uuid
from pizzaport.orders.constants import PAID_STATUSES, TERMINAL_STATUSES, logger
from pizzaport.schema.full_schema import Orders, OrderStatus, PaymentStatus


# --------------------------------------------------------------------------------------------
# reads

async def get_order_by_razorpay_id(session, razorpay_order_id: str) -> Optional[Orders]:
    res = await session.execute(select(Orders).where(Orders.razorpay_order_id == razorpay_order_id))
    return res.scalar_one_or_none()


async def find_order_by_pid(session, public_id: str) -> Orders:
    res = await session.execute(select(Orders).where(Orders.public_id == to_uuid(public_id)))
    order = res.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


async def find_user_order(session, razorpay_order_id: str, email: str) -> Orders:
    stmt = select(Orders).where(Orders.razorpay_order_id == razorpay_order_id, Orders.user_email == email)
    res = await session.execute(stmt)
    order = res.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


async def fetch_user_orders(session, email: str, limit: int) -> List[Orders]:
    stmt = (
        select(Orders)
        .where(Orders.user_email == email, Orders.payment_status.in_(PAID_STATUSES))
        .order_by(desc(Orders.created_at), desc(Orders.id))
        .limit(limit)
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def fetch_orders(session, order_status: Optional[str] = None, payment_status: Optional[str] = None,
                       limit: int = 50, offset: int = 0) -> List[Orders]:
    stmt = select(Orders).order_by(desc(Orders.created_at), desc(Orders.id))
    if order_status:
        stmt = stmt.where(Orders.status == order_status)
    if payment_status:
        stmt = stmt.where(Orders.payment_status == payment_status)
    res = await session.execute(stmt.limit(limit).offset(offset))
    return list(res.scalars().all())


async def fetch_paid_orders_since(session, since: Optional[datetime]) -> List[Orders]:
    stmt = select(Orders).where(Orders.payment_status.in_(PAID_STATUSES)).order_by(Orders.created_at)
    if since is not None:
        stmt = stmt.where(Orders.created_at >= since)
    res = await session.execute(stmt)
    return list(res.scalars().all())


# --------------------------------------------------------------------------------------------
# writes

async def insert_order(session, values: Dict[str, Any]) -> Orders:
    order = Orders(**values)
    session.add(order)
    await session.flush()
    return order


def _placed_if_unset():
    # fulfillment is only initialised , never moved backwards by a payment event
    return case(
        (or_(Orders.status.is_(None), Orders.status == OrderStatus.PLACED.value), OrderStatus.PLACED.value),
        else_=Orders.status,
    )


async def mark_payment_verified(session, order_id: int, razorpay_payment_id: str) -> int:
    """Client callback confirmation , never downgrades a webhook confirmed or refunded order."""
    ts = now()
    stmt = (
        update(Orders)
        .where(Orders.id == order_id)
        .values(
            payment_status=case(
                (Orders.payment_status.in_((PaymentStatus.COMPLETED.value, PaymentStatus.REFUND_INITIATED.value)),
                 Orders.payment_status),
                else_=PaymentStatus.VERIFIED.value,
            ),
            razorpay_payment_id=func.coalesce(Orders.razorpay_payment_id, razorpay_payment_id),
            verified_at=func.coalesce(Orders.verified_at, ts),
            status=_placed_if_unset(),
            updated_at=ts,
        )
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount or 0


async def mark_payment_captured(session, order_id: int) -> int:
    stmt = (
        update(Orders)
        .where(Orders.id == order_id)
        .values(
            payment_status=case(
                (Orders.payment_status == PaymentStatus.REFUND_INITIATED.value, Orders.payment_status),
                else_=PaymentStatus.COMPLETED.value,
            ),
            webhook_received=True,
            status=_placed_if_unset(),
            updated_at=now(),
        )
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount or 0


async def mark_payment_failed(session, order_id: int) -> int:
    """Failure only lands on orders that were never confirmed."""
    stmt = (
        update(Orders)
        .where(Orders.id == order_id)
        .values(
            payment_status=case(
                (Orders.payment_status.in_((PaymentStatus.PENDING.value, PaymentStatus.FAILED.value)),
                 PaymentStatus.FAILED.value),
                else_=Orders.payment_status,
            ),
            webhook_received=True,
            updated_at=now(),
        )
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount or 0


async def claim_coupon_usage(session, order_id: int) -> bool:
    """Flip the per-order coupon marker , True only for the one caller that flipped it."""
    stmt = (
        update(Orders)
        .where(
            Orders.id == order_id,
            Orders.coupon_code.is_not(None),
            Orders.coupon_usage_recorded.is_(False),
        )
        .values(coupon_usage_recorded=True, updated_at=now())
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return (res.rowcount or 0) == 1


def _not_terminal():
    return or_(Orders.status.is_(None), Orders.status.not_in(TERMINAL_STATUSES))


async def set_fulfillment_status(session, order_id: int, target: str) -> int:
    stmt = (
        update(Orders)
        .where(Orders.id == order_id, _not_terminal())
        .values(status=target, updated_at=now())
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount or 0


async def mark_order_canceled(session, order_id: int) -> int:
    ts = now()
    money_moved = Orders.payment_status.in_((PaymentStatus.VERIFIED.value, PaymentStatus.COMPLETED.value))
    stmt = (
        update(Orders)
        .where(Orders.id == order_id, _not_terminal())
        .values(
            status=OrderStatus.CANCELED.value,
            canceled_at=ts,
            payment_status=case((money_moved, PaymentStatus.REFUND_INITIATED.value), else_=Orders.payment_status),
            updated_at=ts,
        )
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    rows = res.rowcount or 0
    if rows:
        logger.info("order.cancel.applied", extra={"order_id": order_id})
    return rows
