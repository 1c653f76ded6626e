"""Authentication for the admin panel.

This module handles:
- Admin login with e-mail and password
- JWT validation for admin-only endpoints
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from seatbooking.config import settings
from seatbooking.database.session import get_db
from seatbooking.database import crud
from seatbooking.database.models import AdminUser
from seatbooking import auth_utils


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])
security = HTTPBearer()


# ============================================================================
# Pydantic Models
# ============================================================================

class AdminLogin(BaseModel):
    """Admin login request."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AdminResponse(BaseModel):
    """Admin account information."""
    id: UUID
    email: str
    full_name: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ============================================================================
# Authentication Dependencies
# ============================================================================

async def get_admin_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> AdminUser:
    """
    Dependency to get the authenticated admin from a JWT bearer token.

    Raises HTTPException if token is invalid or the admin no longer exists.
    """
    try:
        payload = auth_utils.validate_access_token(credentials.credentials)
        admin_id = UUID(payload.get("sub") or "")
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"}
        )

    admin = crud.get_admin_user_by_id(db, admin_id)
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin not found",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return admin


# ============================================================================
# Authentication Endpoints
# ============================================================================

@router.post("/login", response_model=TokenResponse)
async def login_admin(credentials: AdminLogin, db: Session = Depends(get_db)):
    """
    Authenticate an admin and return a JWT access token.

    Unknown e-mails are checked against a dummy hash so the response time
    does not reveal which accounts exist.
    """
    admin = crud.get_admin_user_by_email(db, credentials.email)

    if admin:
        password_valid = auth_utils.verify_password(credentials.password, admin.password_hash)
    else:
        auth_utils.verify_password(credentials.password, auth_utils.DUMMY_PASSWORD_HASH)
        password_valid = False

    if not admin or not password_valid:
        logger.info("Failed admin login for %s", credentials.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    access_token = auth_utils.create_access_token({"sub": str(admin.id), "email": admin.email})
    crud.update_admin_last_login(db, admin.id)
    logger.info("Admin %s logged in", admin.email)

    return TokenResponse(
        access_token=access_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60
    )


@router.get("/me", response_model=AdminResponse)
async def get_current_admin_info(admin: AdminUser = Depends(get_admin_user)):
    """Get the authenticated admin's information."""
    return admin
