"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Usage in routes:
    from fastapi import Request
    from vericlip.core.rate_limit import limiter

    @router.post("/some-ai-endpoint")
    @limiter.limit("10/minute")
    async def my_endpoint(request: Request, payload: MyRequest):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Pipeline runs are expensive (several remote model calls each); keep the
# per-IP budget low on the endpoints that trigger them.
limiter = Limiter(key_func=get_remote_address)
