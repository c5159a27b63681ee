"""
Low-level networking: the asyncio listener that feeds raw request/response
pairs to the application.
"""

from .transport import Transport

__all__ = ["Transport"]
