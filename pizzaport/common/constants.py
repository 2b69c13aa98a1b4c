import contextvars
from typing import Optional

# Context variables for request and trace id
request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)

# money is stored in whole rupees , the gateway takes paise
PAISE_PER_RUPEE = 100
