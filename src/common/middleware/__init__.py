"""Common middleware for FOMO."""

from .observability import StructlogContextMiddleware

__all__ = ["StructlogContextMiddleware"]
