import hashlib
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def _prehash(password: str) -> str:
    """
    bcrypt only looks at the first 72 bytes, so long passphrases are reduced to
    a fixed 64-char SHA-256 hex digest before hashing.
    """
    return hashlib.sha256(password.encode("utf-8")).hexdigest()

def hash_password(password: str) -> str:
    return pwd_context.hash(_prehash(password))

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(_prehash(password), password_hash)

def create_access_token(subject: str, role: str | None = None, ttl_min: int | None = None) -> str:
    """Signed bearer token; `sub` is the user id, `role` is informational only."""
    issued = datetime.now(timezone.utc)
    expires = issued + timedelta(minutes=ttl_min or settings.jwt_access_ttl_min)
    claims = {"sub": subject, "iat": int(issued.timestamp()), "exp": int(expires.timestamp())}
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_alg)

def decode_token(token: str) -> dict:
    # raises JWTError on a bad signature or an expired token
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
