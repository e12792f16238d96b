"""
Location schemas for the province / district pickers.
"""

from models.base import BaseSchema


class Location(BaseSchema):
    """Province or district."""

    id: int
    name: str
