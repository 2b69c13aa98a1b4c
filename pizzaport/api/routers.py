from fastapi import APIRouter
from pizzaport.api import version_prefix
from pizzaport.common.routes import home_router
from pizzaport.coupons.routes import coupons_admin_router, coupons_router
from pizzaport.menu.routes import menu_admin_router, menu_public_router
from pizzaport.orders.routes import checkout_router, orders_admin_router, user_orders_router
from pizzaport.sales.routes import sales_admin_router


public_routers = APIRouter(prefix=version_prefix)

public_routers.include_router(menu_public_router, prefix="/menu", tags=["menu"])
public_routers.include_router(coupons_router, prefix="/coupons", tags=["coupons"])
public_routers.include_router(checkout_router, prefix="/checkout", tags=["checkout"])
public_routers.include_router(user_orders_router, prefix="/orders", tags=["orders"])
public_routers.include_router(home_router, tags=["home"])

#--------------------------------------------------------------------------------------------------------

admin_routers = APIRouter(prefix=f"{version_prefix}/admin")

admin_routers.include_router(menu_admin_router, prefix="/menu", tags=["menu-admin"])
admin_routers.include_router(coupons_admin_router, prefix="/coupons", tags=["coupons-admin"])
admin_routers.include_router(orders_admin_router, prefix="/orders", tags=["orders-admin"])
admin_routers.include_router(sales_admin_router, prefix="/sales", tags=["sales-admin"])
