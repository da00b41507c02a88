# podshop/utils/security.py
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from podshop.utils.errors import AuthError
from podshop.utils.settings import JWT_SECRET, JWT_EXPIRES_SECONDS

_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    secret: str | None = None,
    expires_in: int | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "userId": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in or JWT_EXPIRES_SECONDS),
    }
    return jwt.encode(claims, secret or JWT_SECRET, algorithm=_ALGORITHM)


def decode_access_token(token: str, secret: str | None = None) -> dict:
    try:
        return jwt.decode(token, secret or JWT_SECRET, algorithms=[_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.PyJWTError:
        raise AuthError("Invalid token")
