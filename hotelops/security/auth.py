"""
Authentication and role checks
JWT bearer tokens; roles are the StaffRole enum
"""
import bcrypt
import logging
from datetime import datetime, timedelta, timezone
from typing import List
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from hotelops.config import settings
from hotelops.database import get_db
from hotelops.models.ontology import Staff, StaffRole

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def create_access_token(staff_id: int, role: StaffRole) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(staff_id),
        "role": role.value if isinstance(role, StaffRole) else str(role),
        "exp": expire
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Staff:
    """Staff member behind the bearer token"""
    payload = decode_token(credentials.credentials)

    staff_id = int(payload.get("sub"))
    staff = db.query(Staff).filter(Staff.id == staff_id).first()

    if not staff:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not staff.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled"
        )

    return staff


def require_role(allowed_roles: List[StaffRole]):
    """Dependency factory: the current user must hold one of ``allowed_roles``"""
    async def role_checker(current_user: Staff = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            logger.info(f"{current_user.username} ({current_user.role.value}) denied")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user
    return role_checker


require_admin = require_role([StaffRole.ADMIN])
require_manager = require_role([StaffRole.ADMIN, StaffRole.MANAGER])
require_staff = require_role([StaffRole.ADMIN, StaffRole.MANAGER, StaffRole.STAFF])
require_housekeeping = require_role([StaffRole.ADMIN, StaffRole.MANAGER, StaffRole.STAFF, StaffRole.HOUSEKEEPING])
require_any_role = require_role(list(StaffRole))
