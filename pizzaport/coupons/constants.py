from pizzaport.common.logging_setup import get_logger

logger = get_logger("pizzaport.coupons")

MSG_NOT_FOUND = "Invalid or inactive coupon code"
MSG_EXPIRED = "This coupon has expired"
MSG_LIMIT_REACHED = "Coupon usage limit reached"
MSG_MIN_ORDER = "Minimum order value of ₹{min_order} required"
MSG_APPLIED = "Coupon applied! You saved ₹{discount}"
