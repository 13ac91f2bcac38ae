from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginationMeta(BaseModel):
    current_page: int
    page_size: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool


class Page(BaseModel, Generic[T]):
    items: list[T]
    pagination: PaginationMeta


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
