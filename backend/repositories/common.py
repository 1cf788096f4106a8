# repositories/common.py — Pagination and sorting shared by the repositories
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import Select
from sqlalchemy.orm import InstrumentedAttribute


@dataclass
class PaginationOptions:
    page: int = 1
    limit: int = 20
    sort_by: str = "createdAt"
    sort_order: str = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def apply_pagination(
    stmt: Select,
    pagination: Optional[PaginationOptions],
    sortable: Dict[str, InstrumentedAttribute],
    default_sort: InstrumentedAttribute,
) -> Select:
    """Sort + offset/limit when pagination is given, else newest first.

    `sortable` maps wire field names (camelCase) to columns; an unknown
    sortBy falls back to the default column.
    """
    if pagination is None:
        return stmt.order_by(default_sort.desc())

    column = sortable.get(pagination.sort_by, default_sort)
    order = column.asc() if pagination.sort_order == "asc" else column.desc()
    return stmt.order_by(order).offset(pagination.offset).limit(pagination.limit)


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0
