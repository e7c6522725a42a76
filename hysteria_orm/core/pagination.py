"""Pagination result types."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List

from .types import ModelRecord


@dataclass(frozen=True)
class PaginationMetadata:
    total: int
    per_page: int
    current_page: int
    first_page: int
    is_empty: bool
    last_page: int
    has_more_pages: bool
    has_pages: bool


@dataclass(frozen=True)
class PaginatedResult:
    pagination_metadata: PaginationMetadata
    data: List[ModelRecord] = field(default_factory=list)


def get_pagination_metadata(page: int, limit: int, total: int) -> PaginationMetadata:
    """Build metadata for `page` (1-based) of `limit` rows out of `total`."""

    last_page = max(1, math.ceil(total / limit))
    return PaginationMetadata(
        total=total,
        per_page=limit,
        current_page=page,
        first_page=1,
        is_empty=total == 0,
        last_page=last_page,
        has_more_pages=page < last_page,
        has_pages=total > limit,
    )
