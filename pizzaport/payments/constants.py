import httpx
from pizzaport.common.logging_setup import get_logger

logger = get_logger("pizzaport.payments")

TRANSIENT_EXCEPTIONS = (httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError, httpx.NetworkError)
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_BASE = 0.5
