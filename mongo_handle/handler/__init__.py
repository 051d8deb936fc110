"""Generic document CRUD handle."""

from .handle import Handle

__all__ = ["Handle"]
