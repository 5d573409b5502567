"""Rate limiting with slowapi.

Routers import ``limiter`` for per-endpoint limits; ``main.create_app``
wires it into the application.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# 60 requests/minute per client IP unless a route says otherwise
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)

# Request submission is the only write an employee can repeat at will
SUBMIT_LIMIT = "20/minute"
