from pizzaport.common.logging_setup import get_logger

logger = get_logger("pizzaport.menu")

BESTSELLERS_DEFAULT_LIMIT = 4
