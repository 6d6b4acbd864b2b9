from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinicflow import crud, models
from clinicflow.core.auth_gate import AuthGate, Principal
from clinicflow.core.errors import UnauthenticatedError
from clinicflow.core.query_planner import ListParams, QueryPlanner
from clinicflow.db.session import get_db
from clinicflow.models.user import Role
from clinicflow.services.scheduling import SchedulingEngine

# auto_error=False so a missing header reaches the gate and becomes a 401
bearer_scheme = HTTPBearer(auto_error=False)


def _credential(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_auth_gate(db: Session = Depends(get_db)) -> AuthGate:
    return AuthGate(db)


def get_query_planner(db: Session = Depends(get_db)) -> QueryPlanner:
    return QueryPlanner(db)


def get_scheduling_engine(db: Session = Depends(get_db)) -> SchedulingEngine:
    return SchedulingEngine(db)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    gate: AuthGate = Depends(get_auth_gate),
) -> Principal:
    return gate.authenticate(_credential(credentials))


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    gate: AuthGate = Depends(get_auth_gate),
) -> Optional[Principal]:
    return gate.optional_authenticate(_credential(credentials))


def require_roles(*roles: Role) -> Callable[..., Principal]:
    """
    Dependency factory: authenticate, then require one of ``roles``.

    Usage:
        principal: Principal = Depends(deps.require_roles(Role.DOCTOR, Role.ADMIN))
    """
    required = frozenset(roles)

    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        AuthGate.authorize(principal, required)
        return principal

    return dependency


require_doctor = require_roles(Role.DOCTOR, Role.ADMIN)
require_admin = require_roles(Role.ADMIN)


def require_patient_access(
    patient_id: str,
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Ownership gate for /patients/{patient_id}/... routes."""
    AuthGate.authorize_ownership(principal, patient_id)
    return principal


def get_current_user(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> models.User:
    user = crud.user.get(db, principal.id)
    if user is None:
        raise UnauthenticatedError("User associated with this token not found")
    return user


LIST_QUERY_KEYS = frozenset({"page", "limit", "search", "sort_by", "sort_order"})


class ListQuery:
    """
    Paging, search and sort parameters shared by every list endpoint.

    Query parameters a route does not declare are forwarded as filters, so the
    QueryPlanner rejects them with the list of filters the resource accepts.
    """

    def __init__(
        self,
        request: Request,
        page: int = 1,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ):
        self.request = request
        self.page = page
        self.limit = limit
        self.search = search
        self.sort_by = sort_by
        self.sort_order = sort_order

    def params(self, **filters) -> ListParams:
        undeclared = {
            key: value
            for key, value in self.request.query_params.items()
            if key not in LIST_QUERY_KEYS and key not in filters
        }
        return ListParams(
            page=self.page,
            limit=self.limit,
            filters={**undeclared, **filters},
            search=self.search,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
        )
