"""Helper modules for the Batch Delivery Portal."""

__all__ = [
    "text",
]
