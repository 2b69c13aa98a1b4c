from pizzaport.common.logging_setup import get_logger

logger = get_logger("pizzaport.app")
