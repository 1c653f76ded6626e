"""Authentication utilities for admin password hashing and JWT tokens.

This module provides core authentication functionality used by the auth API.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import bcrypt
import jwt
from jwt.exceptions import InvalidTokenError

from seatbooking.config import settings


# bcrypt hash of "dummy", checked when the e-mail is unknown so login timing stays flat
DUMMY_PASSWORD_HASH = "$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/LewY5GyYqwL7K.sCe"


# ============================================================================
# Password Hashing (using bcrypt directly)
# ============================================================================

def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode('utf-8')[:72]


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password
    """
    salt = bcrypt.gensalt(rounds=settings.password_bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash.

    Returns:
        True if password matches, False otherwise
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


# ============================================================================
# JWT Token Management
# ============================================================================

def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode in token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))

    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": "access"
    })

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        InvalidTokenError: If token is invalid or expired
    """
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm]
    )


def validate_access_token(token: str) -> Dict[str, Any]:
    """
    Validate an access token and return its payload.

    Raises:
        ValueError: If token is invalid, expired, or wrong type
    """
    try:
        payload = decode_token(token)
    except InvalidTokenError as e:
        raise ValueError(f"Invalid token: {str(e)}")

    if payload.get("type") != "access":
        raise ValueError("Invalid token type")

    return payload
