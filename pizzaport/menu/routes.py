from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from pizzaport.auth.dependencies import SessionUser, require_admin
from pizzaport.common.utils import success_response, validate_uuid
from pizzaport.db.dependencies import get_session
from pizzaport.menu.constants import BESTSELLERS_DEFAULT_LIMIT, logger
from pizzaport.menu.models import MenuItemCreateIn, MenuItemUpdateIn
from pizzaport.menu.repository import delete_menu_item, fetch_menu_items, find_menu_item_by_pid, insert_menu_item, menu_item_out, patch_menu_item
from pizzaport.menu.services import bestselling_items

menu_public_router=APIRouter()
menu_admin_router=APIRouter()


@menu_public_router.get("")
async def get_menu(category: Optional[str] = Query(None),
                   session: AsyncSession = Depends(get_session)):
    items = await fetch_menu_items(session, category)
    return success_response({"items": [menu_item_out(i) for i in items]})


@menu_public_router.get("/bestsellers")
async def get_bestsellers(limit: int = Query(BESTSELLERS_DEFAULT_LIMIT, ge=1, le=20),
                          session: AsyncSession = Depends(get_session)):
    items = await bestselling_items(session, limit)
    return success_response({"items": items})


@menu_admin_router.post("")
async def create_menu_item(payload: MenuItemCreateIn,
                           admin: SessionUser = Depends(require_admin),
                           session: AsyncSession = Depends(get_session)):

    logger.info("menu.create.attempt", extra={"user_id": admin.user_id})

    item = await insert_menu_item(session, payload.model_dump())
    await session.commit()

    logger.info("menu.create.success", extra={"menu_item": str(item.public_id), "user_id": admin.user_id})
    return success_response({"message": "menu item created", "item": menu_item_out(item)}, status_code=status.HTTP_201_CREATED)


@menu_admin_router.patch("/{public_id}")
async def update_menu_item(payload: MenuItemUpdateIn,
                           public_id: str = Depends(validate_uuid),
                           admin: SessionUser = Depends(require_admin),
                           session: AsyncSession = Depends(get_session)):

    item = await find_menu_item_by_pid(session, public_id)
    updates = payload.model_dump(exclude_unset=True)  # only fields the client actually sent
    item = await patch_menu_item(session, item, updates)
    await session.commit()

    logger.info("menu.update.success", extra={"menu_item": public_id, "fields": list(updates), "user_id": admin.user_id})
    return success_response({"message": "menu item updated", "item": menu_item_out(item)})


@menu_admin_router.delete("/{public_id}")
async def remove_menu_item(public_id: str = Depends(validate_uuid),
                           admin: SessionUser = Depends(require_admin),
                           session: AsyncSession = Depends(get_session)):

    item = await find_menu_item_by_pid(session, public_id)
    await delete_menu_item(session, item.id)
    await session.commit()

    logger.info("menu.delete.success", extra={"menu_item": public_id, "user_id": admin.user_id})
    return success_response({"message": "menu item deleted"})
