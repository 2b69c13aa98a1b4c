from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from pizzaport.auth.dependencies import SessionUser, require_admin
from pizzaport.common.utils import as_utc, success_response
from pizzaport.db.dependencies import get_session
from pizzaport.sales.services import sales_report

sales_admin_router=APIRouter()


def parse_from_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        # fromisoformat only learned the Z suffix in 3.11
        if value.endswith(("Z", "z")):
            value = value[:-1] + "+00:00"
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid from date")


@sales_admin_router.get("")
async def get_sales_report(from_date: Optional[str] = Query(None, alias="from"),
                           admin: SessionUser = Depends(require_admin),
                           session: AsyncSession = Depends(get_session)):
    report = await sales_report(session, parse_from_date(from_date))
    return success_response(report)
