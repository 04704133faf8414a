"""
Renuga CRM Security Utilities

JWT handling, password hashing, and the authenticated actor.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from core.config import get_settings

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, passed explicitly into service calls."""

    id: str
    email: str
    role: str

    @classmethod
    def from_claims(cls, claims: dict) -> "Actor | None":
        try:
            return cls(id=str(claims["id"]), email=str(claims["email"]), role=str(claims["role"]))
        except KeyError:
            return None

    def to_claims(self) -> dict:
        return {"id": self.id, "email": self.email, "role": self.role}


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    runtime_settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=runtime_settings.access_token_expire_days)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, runtime_settings.jwt_secret, algorithm=runtime_settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a local access token. Returns None on any failure."""
    runtime_settings = get_settings()
    try:
        return jwt.decode(
            token,
            runtime_settings.jwt_secret,
            algorithms=[runtime_settings.jwt_algorithm],
        )
    except JWTError:
        return None
