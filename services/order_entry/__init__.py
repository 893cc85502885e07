"""Order entry: draft state, validation and submission."""

from .composer import OrderComposer

__all__ = ["OrderComposer"]
