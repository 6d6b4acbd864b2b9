"""
Filter + sort + paginate contract shared by every list endpoint.

Each resource declares a ``ListSpec`` naming the filters it accepts, the columns a
free-text ``search`` term is matched against, and the columns it may be sorted by.
``QueryPlanner.paginate`` validates a request against that ListSpec before touching the
database, then runs one count query and one page query.

Usage:
    planner = QueryPlanner(db)
    result = planner.paginate(crud.appointment.list_spec, ListParams(page=2, filters={"status": "scheduled"}))
    result.items, result.pagination
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from clinicflow.core.config import settings
from clinicflow.core.errors import ValidationError

logger = logging.getLogger(__name__)

SORT_ORDERS = ("asc", "desc")
FILTER_OPS = ("eq", "gte", "lte")


@dataclass(frozen=True)
class FilterField:
    column: str
    op: str = "eq"

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass(frozen=True)
class ListSpec:
    model: Any
    filters: Dict[str, FilterField] = field(default_factory=dict)
    search_fields: Tuple[str, ...] = ()
    sortable: Tuple[str, ...] = ("created_at",)
    default_sort: str = "created_at"
    default_order: str = "desc"


@dataclass
class ListParams:
    page: int = 1
    limit: Optional[int] = None
    filters: Dict[str, Any] = field(default_factory=dict)
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None


@dataclass
class PageResult:
    items: List[Any]
    current_page: int
    total_count: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1

    @property
    def pagination(self) -> Dict[str, Any]:
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "total_count": self.total_count,
            "limit": self.limit,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


@dataclass
class _Plan:
    page: int
    limit: int
    filters: Dict[str, Any]
    search: Optional[str]
    sort_by: str
    sort_order: str

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class QueryPlanner:
    def __init__(
        self,
        db: Session,
        default_limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ):
        self.db = db
        self.default_limit = default_limit or settings.DEFAULT_PAGE_SIZE
        self.max_limit = max_limit or settings.MAX_PAGE_SIZE

    def plan(self, spec: ListSpec, params: ListParams) -> _Plan:
        """Validate params against the ListSpec. Raises ValidationError, never queries."""
        if params.page is None or params.page < 1:
            raise ValidationError("page must be a positive integer")

        limit = self.default_limit if params.limit is None else params.limit
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        limit = min(limit, self.max_limit)

        unknown = sorted(set(params.filters) - set(spec.filters))
        if unknown:
            raise ValidationError(
                f"Unknown filter(s): {', '.join(unknown)}",
                details={"allowed_filters": sorted(spec.filters)},
            )

        sort_by = params.sort_by or spec.default_sort
        if sort_by not in spec.sortable:
            raise ValidationError(
                f"Cannot sort by '{sort_by}'",
                details={"allowed_sort_fields": list(spec.sortable)},
            )

        sort_order = (params.sort_order or spec.default_order).lower()
        if sort_order not in SORT_ORDERS:
            raise ValidationError("sort_order must be 'asc' or 'desc'")

        search = params.search.strip() if params.search else None
        if search and not spec.search_fields:
            raise ValidationError("This resource does not support text search")

        filters = {name: value for name, value in params.filters.items() if value is not None}
        return _Plan(
            page=params.page,
            limit=limit,
            filters=filters,
            search=search or None,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    def apply_filters(self, query: Query, spec: ListSpec, plan: _Plan) -> Query:
        model = spec.model
        for name, value in plan.filters.items():
            filter_field = spec.filters[name]
            column = getattr(model, filter_field.column)
            if filter_field.op == "gte":
                query = query.filter(column >= value)
            elif filter_field.op == "lte":
                query = query.filter(column <= value)
            else:
                query = query.filter(column == value)

        if plan.search:
            pattern = f"%{_escape_like(plan.search)}%"
            query = query.filter(
                or_(*[getattr(model, f).ilike(pattern, escape="\\") for f in spec.search_fields])
            )
        return query

    def paginate(self, spec: ListSpec, params: ListParams, base_query: Optional[Query] = None) -> PageResult:
        plan = self.plan(spec, params)
        model = spec.model

        query = base_query if base_query is not None else self.db.query(model)
        query = self.apply_filters(query, spec, plan)

        total_count = query.order_by(None).count()

        sort_column = getattr(model, plan.sort_by)
        order = sort_column.asc() if plan.sort_order == "asc" else sort_column.desc()
        # Primary key breaks ties so pages never overlap for equal sort values
        items = (
            query.order_by(order, model.id.asc())
            .offset(plan.offset)
            .limit(plan.limit)
            .all()
        )

        logger.debug(
            f"{model.__tablename__}: page={plan.page} limit={plan.limit} "
            f"filters={sorted(plan.filters)} total={total_count}"
        )
        return PageResult(items=items, current_page=plan.page, total_count=total_count, limit=plan.limit)
