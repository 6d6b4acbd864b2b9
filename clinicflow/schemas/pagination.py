from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginationMeta(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next: bool
    has_prev: bool


class Page(BaseModel, Generic[T]):
    items: List[T]
    pagination: PaginationMeta


def build_page(schema, result) -> Page:
    """Wrap a QueryPlanner PageResult into the response envelope for ``schema`` items."""
    return Page[schema](
        items=[schema.model_validate(item) for item in result.items],
        pagination=PaginationMeta(**result.pagination),
    )
