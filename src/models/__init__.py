"""
Init file for the pydantic document models.
"""

from .restaurants import Restaurant
from .reviews import Review

__all__ = [
    "Restaurant",
    "Review",
]
