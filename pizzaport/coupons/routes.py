from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from pizzaport.auth.dependencies import SessionUser, require_admin, require_user_email
from pizzaport.common.utils import success_response, validate_uuid
from pizzaport.coupons.constants import logger
from pizzaport.coupons.models import CouponCreateIn, CouponUpdateIn, CouponValidateIn
from pizzaport.coupons.repository import (coupon_out, delete_coupon, fetch_active_coupons, fetch_all_coupons,
                                          find_coupon_by_pid, insert_coupon, patch_coupon)
from pizzaport.coupons.services import coupon_summary, remaining_uses, validate_coupon
from pizzaport.db.dependencies import get_session
from pizzaport.schema.full_schema import DiscountType

coupons_router=APIRouter()
coupons_admin_router=APIRouter()


@coupons_router.post("/validate")
async def validate_coupon_code(payload: CouponValidateIn,
                               user: SessionUser = Depends(require_user_email),
                               session: AsyncSession = Depends(get_session)):
    # an invalid coupon is a normal answer , not an error
    result = await validate_coupon(session, payload.code, payload.subtotal)
    return success_response(result.as_dict())


@coupons_router.get("")
async def list_active_coupons(user: SessionUser = Depends(require_user_email),
                              session: AsyncSession = Depends(get_session)):
    coupons = await fetch_active_coupons(session)
    items = [{**coupon_summary(c), "expiry_date": c.expiry_date, "remaining_uses": remaining_uses(c)}
             for c in coupons]
    return success_response({"coupons": items})


@coupons_admin_router.get("")
async def admin_list_coupons(admin: SessionUser = Depends(require_admin),
                             session: AsyncSession = Depends(get_session)):
    coupons = await fetch_all_coupons(session)
    return success_response({"coupons": [coupon_out(c) for c in coupons]})


@coupons_admin_router.post("")
async def admin_create_coupon(payload: CouponCreateIn,
                              admin: SessionUser = Depends(require_admin),
                              session: AsyncSession = Depends(get_session)):
    values = payload.model_dump()
    values["discount_type"] = payload.discount_type.value
    coupon = await insert_coupon(session, values)
    await session.commit()

    logger.info("coupon.create.success", extra={"code": coupon.code, "user_id": admin.user_id})
    return success_response({"message": "coupon created", "coupon": coupon_out(coupon)}, status_code=status.HTTP_201_CREATED)


@coupons_admin_router.patch("/{public_id}")
async def admin_update_coupon(payload: CouponUpdateIn,
                              public_id: str = Depends(validate_uuid),
                              admin: SessionUser = Depends(require_admin),
                              session: AsyncSession = Depends(get_session)):
    coupon = await find_coupon_by_pid(session, public_id)
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("discount_type") is not None:
        updates["discount_type"] = payload.discount_type.value
    # bounds hold for the row as it will be stored , not just the fields sent
    merged_type = updates.get("discount_type") or coupon.discount_type
    merged_value = updates.get("discount_value")
    if merged_value is None:
        merged_value = coupon.discount_value
    if merged_type == DiscountType.PERCENTAGE.value and merged_value > 100:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                            detail="Percentage discount cannot exceed 100")
    coupon = await patch_coupon(session, coupon, updates)
    await session.commit()

    logger.info("coupon.update.success", extra={"coupon": public_id, "fields": list(updates), "user_id": admin.user_id})
    return success_response({"message": "coupon updated", "coupon": coupon_out(coupon)})


@coupons_admin_router.delete("/{public_id}")
async def admin_delete_coupon(public_id: str = Depends(validate_uuid),
                              admin: SessionUser = Depends(require_admin),
                              session: AsyncSession = Depends(get_session)):
    coupon = await find_coupon_by_pid(session, public_id)
    await delete_coupon(session, coupon.id)
    await session.commit()

    logger.info("coupon.delete.success", extra={"coupon": public_id, "user_id": admin.user_id})
    return success_response({"message": "coupon deleted"})
