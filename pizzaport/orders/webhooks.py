import json
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from pizzaport.common.utils import build_error, json_error, success_response
from pizzaport.db.dependencies import get_session
from pizzaport.orders.constants import logger
from pizzaport.orders.services import apply_payment_captured, apply_payment_failed
from pizzaport.payments.gateway import verify_webhook_signature

EVENT_CAPTURED = "payment.captured"
EVENT_FAILED = "payment.failed"


async def razorpay_webhook(request: Request, session: AsyncSession = Depends(get_session)):
    body = await request.body()
    signature = request.headers.get("x-razorpay-signature")
    settings = request.app.state.settings

    # verify before parsing anything
    if not verify_webhook_signature(body, signature, settings.RAZORPAY_WEBHOOK_SECRET):
        logger.warning("razorpay.webhook.invalid_signature", extra={"has_signature": bool(signature)})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    try:
        payload = json.loads(body)
    except ValueError:
        logger.warning("razorpay.webhook.malformed_body")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed payload")

    event = payload.get("event")
    payment_entity = ((payload.get("payload") or {}).get("payment") or {}).get("entity") or {}
    razorpay_order_id = payment_entity.get("order_id")

    if event not in (EVENT_CAPTURED, EVENT_FAILED):
        logger.info("razorpay.webhook.ignored", extra={"event": event})
        return success_response({"received": True, "note": "event ignored"})

    if not razorpay_order_id:
        logger.warning("razorpay.webhook.missing_order_id", extra={"event": event})
        return success_response({"received": True, "note": "no order id"})

    try:
        if event == EVENT_CAPTURED:
            order = await apply_payment_captured(session, razorpay_order_id)
        else:
            order = await apply_payment_failed(session, razorpay_order_id)
    except SQLAlchemyError:
        await session.rollback()
        # non 2xx makes razorpay redeliver the event
        logger.exception("razorpay.webhook.processing_error",
                         extra={"event": event, "razorpay_order_id": razorpay_order_id})
        return json_error(build_error("PROCESSING_ERROR", "Processing error"), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if order is None:
        logger.warning("razorpay.webhook.order_not_found", extra={"event": event, "razorpay_order_id": razorpay_order_id})
        return success_response({"received": True, "note": "order not found"})

    log_event = "razorpay.webhook.captured" if event == EVENT_CAPTURED else "razorpay.webhook.failed"
    logger.info(log_event, extra={"razorpay_order_id": razorpay_order_id,
                                  "payment_status": order.payment_status, "order_status": order.status})
    return success_response({"received": True, "payment_status": order.payment_status})
