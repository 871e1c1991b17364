"""Shared pagination constants, envelope model and response header helpers."""

from fastapi import Response
from pydantic import BaseModel

from services.aggregation import Page

MAX_PAGE_SIZE = 50
MAX_USERS_PAGE_SIZE = 100


class PaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int
    pages: int

    @classmethod
    def from_page(cls, page: Page) -> "PaginationMeta":
        return cls(total=page.total, limit=page.limit, offset=page.offset, pages=page.pages)


def set_next_offset_header(
    response: Response,
    *,
    offset: int,
    limit: int,
    has_more: bool,
) -> None:
    if has_more:
        response.headers["X-Next-Offset"] = str(offset + limit)


def apply_page_headers(response: Response, page: Page) -> PaginationMeta:
    set_next_offset_header(
        response,
        offset=page.offset,
        limit=page.limit,
        has_more=page.has_more,
    )
    return PaginationMeta.from_page(page)
