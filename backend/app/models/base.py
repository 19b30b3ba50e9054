"""Declarative base shared by all models.

Kept free of engine setup so migrations can import the metadata.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all models."""
