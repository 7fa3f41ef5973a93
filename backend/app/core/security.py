import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import settings

# CryptContext handles password hashing using bcrypt
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Alphabet for generated passwords and activation keys
KEY_ALPHABET = string.ascii_letters + string.digits
KEY_LENGTH = 20


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash using constant-time comparison"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def generate_random_key(length: int = KEY_LENGTH) -> str:
    """Generate a random alphanumeric key (activation keys, initial passwords)"""
    return "".join(secrets.choice(KEY_ALPHABET) for _ in range(length))


def generate_password() -> str:
    return generate_random_key(60)


def create_access_token(
    subject: str,
    authorities: Iterable[str] = (),
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token for a username with its authorities"""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(
            timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # 'auth' carries the role names at issue time; the role gate re-reads them
    # from the database so revoked roles take effect immediately
    to_encode = {
        "sub": subject,
        "auth": ",".join(sorted(authorities)),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY,
                          algorithms=[settings.ALGORITHM])
    except JWTError:
        # Token is invalid - could be expired, tampered, or wrong secret key
        return None
