"""Lesson shop: lessons and orders REST API plus a cart/checkout client."""

__version__ = "1.0.0"
