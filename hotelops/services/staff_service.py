"""
Staff service
Staff accounts and login
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from hotelops.models.ontology import Staff, StaffRole
from hotelops.models.schemas import StaffCreate, StaffUpdate
from hotelops.security.auth import get_password_hash, verify_password, create_access_token


class StaffService:
    """Staff service"""

    def __init__(self, db: Session):
        self.db = db

    def get_staff_list(self, role: Optional[StaffRole] = None,
                       is_active: Optional[bool] = None) -> List[Staff]:
        query = self.db.query(Staff)
        if role:
            query = query.filter(Staff.role == role)
        if is_active is not None:
            query = query.filter(Staff.is_active == is_active)
        return query.order_by(Staff.id).all()

    def get_staff(self, staff_id: int) -> Optional[Staff]:
        return self.db.query(Staff).filter(Staff.id == staff_id).first()

    def get_by_username(self, username: str) -> Optional[Staff]:
        return self.db.query(Staff).filter(Staff.username == username).first()

    def create_staff(self, data: StaffCreate) -> Staff:
        if self.get_by_username(data.username):
            raise ValueError(f"Username '{data.username}' already exists")

        staff = Staff(
            password_hash=get_password_hash(data.password),
            **data.model_dump(exclude={"password"})
        )
        self.db.add(staff)
        self.db.commit()
        self.db.refresh(staff)
        return staff

    def update_staff(self, staff_id: int, data: StaffUpdate) -> Staff:
        staff = self.get_staff(staff_id)
        if not staff:
            raise ValueError("Staff not found")

        update_data = data.model_dump(exclude_unset=True)
        demoted = 'role' in update_data and update_data['role'] != StaffRole.ADMIN
        disabled = update_data.get('is_active') is False
        if staff.role == StaffRole.ADMIN and (demoted or disabled):
            admin_count = self.db.query(Staff).filter(
                Staff.role == StaffRole.ADMIN,
                Staff.is_active == True  # noqa: E712
            ).count()
            if admin_count <= 1:
                raise ValueError("At least one active admin account is required")

        for key, value in update_data.items():
            setattr(staff, key, value)
        self.db.commit()
        self.db.refresh(staff)
        return staff

    def authenticate(self, username: str, password: str) -> Optional[dict]:
        """Token and profile for valid credentials, None otherwise"""
        staff = self.get_by_username(username)
        if not staff:
            return None

        if not staff.is_active:
            raise ValueError("Account is disabled")

        if not verify_password(password, staff.password_hash):
            return None

        return {
            'access_token': create_access_token(staff.id, staff.role),
            'token_type': 'bearer',
            'staff': staff,
        }
