from pizzaport.common.logging_setup import get_logger
from pizzaport.schema.full_schema import OrderStatus, PaymentStatus

logger = get_logger("pizzaport.orders")

TAX_RATE = "0.05"
FREE_DELIVERY_THRESHOLD = 400
DELIVERY_FEE = 50

# payment statuses meaning money moved , used for buyer history and reports
PAID_STATUSES = (
    PaymentStatus.VERIFIED.value,
    PaymentStatus.COMPLETED.value,
    PaymentStatus.REFUND_INITIATED.value,
)

TERMINAL_STATUSES = (OrderStatus.COMPLETED.value, OrderStatus.CANCELED.value)

USER_ORDERS_LIMIT = 50
