from typing import Any, Dict, Iterable, List, Optional
from fastapi import HTTPException,status
from sqlalchemy import delete, desc, select
from pizzaport.common.utils import to_uuid
from pizzaport.schema.full_schema import MenuItem
from pizzaport.menu.constants import logger


def menu_item_out(item: MenuItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "public_id": str(item.public_id),
        "name": item.name,
        "description": item.description,
        "base_price": item.base_price,
        "discount_price": item.discount_price,
        "category": item.category,
        "size_options": item.size_options or [],
        "extra_ingredients": item.extra_ingredients or [],
        "image_url": item.image_url,
        "created_at": item.created_at,
    }


async def fetch_menu_items(session, category: Optional[str] = None) -> List[MenuItem]:
    stmt = select(MenuItem).order_by(desc(MenuItem.created_at), desc(MenuItem.id))
    if category:
        stmt = stmt.where(MenuItem.category == category)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def fetch_menu_items_by_ids(session, item_ids: Iterable[int]) -> Dict[int, MenuItem]:
    ids = list(set(item_ids))
    if not ids:
        return {}
    res = await session.execute(select(MenuItem).where(MenuItem.id.in_(ids)))
    return {item.id: item for item in res.scalars().all()}


async def find_menu_item_by_pid(session, public_id: str) -> MenuItem:
    res = await session.execute(select(MenuItem).where(MenuItem.public_id == to_uuid(public_id)))
    item = res.scalar_one_or_none()
    if not item:
        logger.warning("menu.item.not_found", extra={"public_id": public_id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Menu item not found")
    return item


async def insert_menu_item(session, values: Dict[str, Any]) -> MenuItem:
    item = MenuItem(**values)
    session.add(item)
    await session.flush()
    return item


async def patch_menu_item(session, item: MenuItem, updates: Dict[str, Any]) -> MenuItem:
    for field, value in updates.items():
        setattr(item, field, value)
    session.add(item)
    await session.flush()
    return item


async def delete_menu_item(session, item_id: int) -> None:
    await session.execute(delete(MenuItem).where(MenuItem.id == item_id))


