from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status
from sqlalchemy import delete, desc, or_, select, update
from sqlalchemy.exc import IntegrityError
from pizzaport.common.utils import now, to_uuid
from pizzaport.coupons.constants import logger
from pizzaport.schema.full_schema import Coupon


def coupon_out(coupon: Coupon) -> Dict[str, Any]:
    return {
        "public_id": str(coupon.public_id),
        "code": coupon.code,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "min_order_value": coupon.min_order_value,
        "max_discount": coupon.max_discount,
        "expiry_date": coupon.expiry_date,
        "usage_limit": coupon.usage_limit,
        "usage_count": coupon.usage_count,
        "is_active": coupon.is_active,
        "created_at": coupon.created_at,
    }


async def get_coupon_by_code(session, code: str) -> Optional[Coupon]:
    res = await session.execute(select(Coupon).where(Coupon.code == code))
    return res.scalar_one_or_none()


async def find_coupon_by_pid(session, public_id: str) -> Coupon:
    res = await session.execute(select(Coupon).where(Coupon.public_id == to_uuid(public_id)))
    coupon = res.scalar_one_or_none()
    if not coupon:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Coupon not found")
    return coupon


async def fetch_all_coupons(session) -> List[Coupon]:
    res = await session.execute(select(Coupon).order_by(desc(Coupon.created_at), desc(Coupon.id)))
    return list(res.scalars().all())


async def fetch_active_coupons(session) -> List[Coupon]:
    stmt = (
        select(Coupon)
        .where(Coupon.is_active.is_(True),
               or_(Coupon.expiry_date.is_(None), Coupon.expiry_date >= now()))
        .order_by(desc(Coupon.created_at))
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def code_taken(session, code: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Coupon.id).where(Coupon.code == code)
    if exclude_id is not None:
        stmt = stmt.where(Coupon.id != exclude_id)
    res = await session.execute(stmt)
    return res.first() is not None


async def insert_coupon(session, values: Dict[str, Any]) -> Coupon:
    if await code_taken(session, values["code"]):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coupon code already exists")

    coupon = Coupon(**values)
    session.add(coupon)
    try:
        await session.flush()
    except IntegrityError:
        # lost a race against a concurrent insert of the same code
        await session.rollback()
        logger.warning("coupon.create.duplicate_code", extra={"code": values["code"]})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coupon code already exists")
    return coupon


async def patch_coupon(session, coupon: Coupon, updates: Dict[str, Any]) -> Coupon:
    new_code = updates.get("code")
    if new_code and new_code != coupon.code and await code_taken(session, new_code, exclude_id=coupon.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coupon code already exists")

    for field, value in updates.items():
        setattr(coupon, field, value)
    session.add(coupon)
    await session.flush()
    return coupon


async def delete_coupon(session, coupon_id: int) -> None:
    await session.execute(delete(Coupon).where(Coupon.id == coupon_id))


async def increment_coupon_usage(session, code: str) -> int:
    """Atomic usage_count + 1 , returns rows touched (0 when the coupon was deleted since)."""
    stmt = (
        update(Coupon)
        .where(Coupon.code == code)
        .values(usage_count=Coupon.usage_count + 1, updated_at=now())
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount or 0
