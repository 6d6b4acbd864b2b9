import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinicflow.core.errors import ConflictError
from clinicflow.core.security import get_password_hash, verify_password
from clinicflow.models.doctor import Doctor
from clinicflow.models.patient import Patient
from clinicflow.models.user import User, Role
from clinicflow.schemas.user import RegisterRequest, ProfileUpdate
from clinicflow.utils.timezone import utcnow

logger = logging.getLogger(__name__)


class CRUDUser:
    def get(self, db: Session, id: str) -> Optional[User]:
        return db.query(User).filter(User.id == id).first()

    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    def create(self, db: Session, *, email: str, password: str, first_name: str,
               last_name: str, role: Role, phone: Optional[str] = None) -> User:
        if self.get_by_email(db, email=email):
            raise ConflictError("A user with this email already exists")
        db_obj = User(
            email=email.lower(),
            hashed_password=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role.value,
            is_active=True,
        )
        db.add(db_obj)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("A user with this email already exists")
        db.refresh(db_obj)
        return db_obj

    def create_with_profile(self, db: Session, *, obj_in: RegisterRequest) -> User:
        """Create the User and its role profile in one transaction.

        The profile reuses the User's id, so a patient's Principal id is also
        its Patient id.
        """
        if self.get_by_email(db, email=obj_in.email):
            raise ConflictError("A user with this email already exists")

        user = User(
            email=obj_in.email.lower(),
            hashed_password=get_password_hash(obj_in.password),
            first_name=obj_in.first_name,
            last_name=obj_in.last_name,
            phone=obj_in.phone,
            role=obj_in.role,
            is_active=True,
        )
        db.add(user)
        db.flush()

        if obj_in.role == Role.PATIENT.value:
            db.add(Patient(
                id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                email=user.email,
                phone=user.phone,
                date_of_birth=obj_in.date_of_birth,
                gender=obj_in.gender,
                created_by=user.id,
            ))
        elif obj_in.role == Role.DOCTOR.value:
            db.add(Doctor(
                id=user.id,
                user_id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                email=user.email,
                specialization=obj_in.specialization,
                license_number=obj_in.license_number,
            ))

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("A user or profile with these details already exists")
        db.refresh(user)
        logger.info(f"Registered {user.role} user {user.id}")
        return user

    def authenticate(self, db: Session, *, email: str, password: str) -> Optional[User]:
        user = self.get_by_email(db, email=email)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    def mark_login(self, db: Session, *, db_obj: User) -> User:
        db_obj.last_login_at = utcnow()
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def update_profile(self, db: Session, *, db_obj: User, obj_in: ProfileUpdate) -> User:
        update_data = obj_in.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(db_obj, field, value)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def set_password(self, db: Session, *, db_obj: User, password: str) -> User:
        db_obj.hashed_password = get_password_hash(password)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def is_active(self, user: User) -> bool:
        return user.is_active


# Create instance that can be imported directly
user = CRUDUser()
