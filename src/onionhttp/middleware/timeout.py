"""
Deadline for the downstream chain.

There is no timeout built into the runtime; this handler races its own
deadline against ``next()``:

    app.use(error_handler())
    app.use(timeout(2.5))      # everything registered below gets 2.5s

On expiry the downstream task is cancelled and an HTTPError(503) is
raised, which error_handler() turns into a 503 response.
"""

import asyncio
import logging
from typing import Callable

from ..compose import Next
from ..context import Context
from ..errors import HTTPError


logger = logging.getLogger(__name__)


def timeout(seconds: float, status_code: int = 503) -> Callable:
    """
    Build a middleware failing the exchange when downstream takes too long.

    Args:
        seconds: Deadline for everything after this handler.
        status_code: Status of the raised HTTPError.
    """
    if seconds <= 0:
        raise ValueError("timeout must be > 0")

    async def enforce_timeout(ctx: Context, next: Next) -> None:
        try:
            await asyncio.wait_for(next(), timeout=seconds)
        except asyncio.TimeoutError:
            logger.warning(f"{ctx.method} {ctx.url} exceeded {seconds}s")
            raise HTTPError(
                status_code,
                f"Request took longer than {seconds}s",
                expose=True,
            ) from None

    enforce_timeout.name = "timeout"
    return enforce_timeout
