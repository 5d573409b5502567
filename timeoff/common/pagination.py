"""Page/size/sort handling shared by the list endpoints."""

import math
from typing import Any, Generic, Optional, Sequence, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")

MAX_PAGE_SIZE = 100


class PaginationParams:
    """Query-string paging options, used as ``Depends(PaginationParams)``."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="1-based page index"),
        page_size: int = Query(default=50, ge=1, le=MAX_PAGE_SIZE),
        sort: Optional[str] = Query(
            default=None,
            description='Column to order by; a leading "-" reverses it ("-start_date")',
        ),
    ) -> None:
        self.page = page
        self.page_size = page_size
        self.sort = sort

    @property
    def offset(self) -> int:
        return self.page_size * (self.page - 1)


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def for_total(cls, params: PaginationParams, total: int) -> "PaginationMeta":
        pages = math.ceil(total / params.page_size) if total else 0
        return cls(
            page=params.page,
            page_size=params.page_size,
            total=total,
            total_pages=pages,
            has_next=params.page < pages,
            has_prev=params.page > 1,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """``{"data": [...], "meta": {...}}``"""

    data: Sequence[T]
    meta: PaginationMeta


def _apply_sort(query: Select, sort: Optional[str], model: Any) -> Select:
    # Only real table columns are accepted; anything else leaves the order alone
    if not sort or model is None:
        return query
    name = sort.lstrip("-")
    if name not in model.__table__.columns:
        return query
    column = getattr(model, name)
    return query.order_by(column.desc() if sort.startswith("-") else column.asc())


async def paginate(
    session: AsyncSession,
    query: Select,
    params: PaginationParams,
    *,
    model: Any = None,
) -> PaginatedResponse:
    """Run *query* for one page and count the full result set alongside it."""
    query = _apply_sort(query, params.sort, model)

    total = (
        await session.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
    ).scalar_one()
    page = await session.execute(query.limit(params.page_size).offset(params.offset))

    return PaginatedResponse(
        data=page.scalars().all(),
        meta=PaginationMeta.for_total(params, total),
    )
