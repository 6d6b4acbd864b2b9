import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from clinicflow import crud, models, schemas
from clinicflow.api import deps
from clinicflow.core import security
from clinicflow.core.config import settings
from clinicflow.core.errors import UnauthenticatedError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


def _issue_tokens(user: models.User) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        access_token=security.create_access_token(user.id, user.email, user.role),
        refresh_token=security.create_refresh_token(user.id, user.email, user.role),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=schemas.User.model_validate(user),
    )


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    *,
    db: Session = Depends(deps.get_db),
    user_in: schemas.RegisterRequest,
) -> Any:
    """
    Create a user together with its patient or doctor profile.
    """
    if user_in.role == models.Role.DOCTOR.value and not (user_in.specialization and user_in.license_number):
        raise ValidationError("specialization and license_number are required for doctors")

    user = crud.user.create_with_profile(db, obj_in=user_in)
    return _issue_tokens(user)


@router.post("/login", response_model=schemas.AuthResponse)
def login(
    *,
    db: Session = Depends(deps.get_db),
    credentials: schemas.LoginRequest,
) -> Any:
    user = crud.user.authenticate(db, email=credentials.email, password=credentials.password)
    if not user:
        logger.warning(f"Failed login attempt for {credentials.email}")
        raise UnauthenticatedError("Invalid email or password")
    if not crud.user.is_active(user):
        raise ValidationError("Account is deactivated")

    user = crud.user.mark_login(db, db_obj=user)
    return _issue_tokens(user)


@router.post("/refresh", response_model=schemas.AccessTokenResponse)
def refresh_token(
    *,
    db: Session = Depends(deps.get_db),
    token_in: schemas.RefreshTokenRequest,
) -> Any:
    """
    Exchange a refresh token for a new access token.
    """
    try:
        payload = security.decode_token(token_in.refresh_token)
    except ExpiredSignatureError:
        raise UnauthenticatedError("Refresh token has expired")
    except JWTError:
        raise UnauthenticatedError("Refresh token is invalid")

    if payload.get("type") != security.REFRESH_TOKEN_TYPE:
        raise UnauthenticatedError("Refresh token is invalid")

    user = crud.user.get(db, str(payload.get("sub")))
    if not user or not user.is_active:
        raise UnauthenticatedError("User not found or inactive")

    return schemas.AccessTokenResponse(
        access_token=security.create_access_token(user.id, user.email, user.role),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.get("/profile", response_model=schemas.User)
def read_profile(current_user: models.User = Depends(deps.get_current_user)) -> Any:
    return current_user


@router.put("/profile", response_model=schemas.User)
def update_profile(
    *,
    db: Session = Depends(deps.get_db),
    profile_in: schemas.ProfileUpdate,
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    return crud.user.update_profile(db, db_obj=current_user, obj_in=profile_in)


@router.put("/change-password")
def change_password(
    *,
    db: Session = Depends(deps.get_db),
    password_in: schemas.PasswordChange,
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    if not security.verify_password(password_in.current_password, current_user.hashed_password):
        raise ValidationError("Current password is incorrect")

    crud.user.set_password(db, db_obj=current_user, password=password_in.new_password)
    logger.info(f"Password changed for user {current_user.id}")
    return {"message": "Password updated successfully"}
