"""
Authentication and authorization gate.

``authenticate`` turns a bearer token into a ``Principal``. The role always comes
from the stored user row, never from the token, so deactivation and role changes
take effect on the next request.

``authorize`` and ``authorize_ownership`` are pure checks; the FastAPI
dependencies in ``clinicflow.api.deps`` compose them per route.
"""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Optional

from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from clinicflow.core import security
from clinicflow.core.errors import ForbiddenError, UnauthenticatedError
from clinicflow.models.user import Role, User

logger = logging.getLogger(__name__)

STAFF_ROLES: AbstractSet[Role] = frozenset({Role.DOCTOR, Role.ADMIN})
ADMIN_ROLES: AbstractSet[Role] = frozenset({Role.ADMIN})


@dataclass(frozen=True)
class Principal:
    id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, email=user.email, role=Role(user.role))


class AuthGate:
    def __init__(self, db: Session):
        self.db = db

    def authenticate(self, credential: Optional[str]) -> Principal:
        if not credential:
            raise UnauthenticatedError("Access token required")

        try:
            payload = security.decode_token(credential)
        except ExpiredSignatureError:
            raise UnauthenticatedError("Token has expired")
        except JWTError:
            raise UnauthenticatedError("Token is invalid")

        if payload.get("type") != security.ACCESS_TOKEN_TYPE:
            raise UnauthenticatedError("Token is invalid")

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthenticatedError("Token is invalid")

        user = self.db.query(User).filter(User.id == str(user_id)).first()
        if user is None:
            logger.warning(f"Token presented for unknown user {user_id}")
            raise UnauthenticatedError("User associated with this token not found")
        if not user.is_active:
            logger.warning(f"Token presented for deactivated user {user_id}")
            raise UnauthenticatedError("Account is deactivated")

        return Principal.from_user(user)

    def optional_authenticate(self, credential: Optional[str]) -> Optional[Principal]:
        if not credential:
            return None
        try:
            return self.authenticate(credential)
        except UnauthenticatedError:
            return None

    @staticmethod
    def authorize(principal: Principal, required_roles: AbstractSet[Role]) -> None:
        # Admin passes every gate; admin-only gates are simply {admin}
        if principal.role in required_roles or principal.is_admin:
            return
        allowed = ", ".join(sorted(r.value for r in required_roles))
        raise ForbiddenError(f"Required roles: {allowed}. Your role: {principal.role.value}")

    @staticmethod
    def authorize_ownership(principal: Principal, owner_id: str) -> None:
        if principal.is_staff:
            return
        if principal.role == Role.PATIENT and principal.id == owner_id:
            return
        raise ForbiddenError("You can only access your own patient data")
