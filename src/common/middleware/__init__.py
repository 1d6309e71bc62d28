"""Common middleware for Rollcall."""

from .observability import StructlogContextMiddleware

__all__ = ["StructlogContextMiddleware"]
