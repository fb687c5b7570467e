"""Shared schema building blocks."""

from datetime import time
from math import ceil
from typing import Literal

from pydantic import BaseModel

from app.core.exceptions import InvalidInputException
from app.core.scheduling import parse_time

PHONE_PATTERN = r"^\+?[1-9]\d{0,15}$"

SortOrder = Literal["asc", "desc"]


def coerce_time(value: object) -> time:
    """Field validator helper turning ``HH:MM`` strings into times."""
    if value is None:
        return value  # type: ignore[return-value]
    try:
        return parse_time(value)  # type: ignore[arg-type]
    except InvalidInputException as e:
        raise ValueError(e.message) from e


class PaginationMeta(BaseModel):
    """Pagination block attached to list responses."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        """Derive page counts from the requested window and total row count."""
        total_pages = ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )
