from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from pizzaport.api import cur_version
from pizzaport.api.routers import admin_routers, public_routers
from pizzaport.common.custom_exceptions import register_all_exceptions
from pizzaport.common.logging_setup import setup_logging, stop_logging
from pizzaport.config.settings import Settings, config_settings
from pizzaport.db.connection import build_engine, build_session_maker, create_all_tables
from pizzaport.middlewares.request_id_middleware import RequestIdMiddleware
from pizzaport.orders.webhooks import razorpay_webhook
from pizzaport.payments.gateway import RazorpayGateway
from pizzaport import logger


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    setup_logging()
    settings: Settings = app.state.settings

    engine = build_engine(settings)
    app.state.async_engine = engine
    app.state.async_session = build_session_maker(engine)

    if settings.DB_CREATE_ALL:
        await create_all_tables(engine)

    if getattr(app.state, "payment_gateway", None) is None:
        app.state.payment_gateway = RazorpayGateway.from_settings(settings)

    logger.info("app.startup", extra={"env": settings.ENV, "admin_enabled": settings.ENABLE_ADMIN})
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("app.shutdown")
        stop_logging()


def create_app(settings: Optional[Settings] = None, payment_gateway: Optional[RazorpayGateway] = None) -> FastAPI:
    settings = settings or config_settings

    app=FastAPI(
        title="PizzaPort",
        version=cur_version,
        lifespan=app_lifespan)

    app.state.settings = settings
    app.state.payment_gateway = payment_gateway

    app.include_router(public_routers)

    app.add_api_route(settings.RAZORPAY_WEBHOOK_PATH, razorpay_webhook, methods=["POST"], name="razorpay_webhook")

    if settings.ENABLE_ADMIN:
        app.include_router(admin_routers)      # mounts /api/v1/admin

    app.add_middleware(RequestIdMiddleware)
    register_all_exceptions(app)

    return app

app=create_app()
