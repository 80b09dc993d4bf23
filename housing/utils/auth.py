"""
Authentication utilities for JWT token management and password hashing.
Used by the local backend to issue and verify session tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
import uuid


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenPayload:
    """JWT token payload structure."""

    def __init__(self, user_id: str, email: str, token_type: str, exp: datetime):
        self.user_id = user_id
        self.email = email
        self.token_type = token_type
        self.exp = exp

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from dictionary."""
        return cls(
            user_id=data["sub"],
            email=data["email"],
            token_type=data["type"],
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        )


def _encode(claims: Dict[str, Any], secret_key: str, algorithm: str) -> str:
    return jwt.encode(claims, secret_key, algorithm=algorithm)


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: timedelta = timedelta(minutes=60)
) -> str:
    """
    Create JWT access token with user claims.

    Args:
        user_id: User's UUID
        email: User's email address
        secret_key: Signing key
        algorithm: Signing algorithm
        expires_delta: Lifetime of the token

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user_id),  # Subject (user ID)
        "email": email,
        "exp": now + expires_delta,
        "iat": now,  # Issued at
        "jti": uuid.uuid4().hex,
        "type": "access"
    }
    return _encode(to_encode, secret_key, algorithm)


def create_refresh_token(
    user_id: uuid.UUID,
    email: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: timedelta = timedelta(days=7)
) -> str:
    """
    Create JWT refresh token.
    """
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "exp": now + expires_delta,
        "iat": now,
        "jti": uuid.uuid4().hex,
        "type": "refresh"
    }
    return _encode(to_encode, secret_key, algorithm)


def verify_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
    token_type: str = "access"
) -> TokenPayload:
    """
    Verify and decode JWT token.

    Args:
        token: JWT token string
        secret_key: Signing key
        algorithm: Signing algorithm
        token_type: Expected token type ("access" or "refresh")

    Returns:
        TokenPayload of a valid token

    Raises:
        JWTError: If token is invalid, expired or of the wrong type
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        raise
    except Exception as e:
        raise JWTError(f"Token validation error: {str(e)}")

    # Verify token type
    if payload.get("type") != token_type:
        raise JWTError(f"Invalid token type. Expected {token_type}")

    if not payload.get("sub") or not payload.get("email"):
        raise JWTError("Invalid token payload")

    return TokenPayload.from_dict(payload)


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Raises:
        ValueError: If password is too short
    """
    if not password or len(password) < 6:
        raise ValueError("Password should be at least 6 characters")

    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify password against hash.
    """
    return pwd_context.verify(plain_password, hashed_password)
