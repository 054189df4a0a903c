# laundry/auth.py
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import JWTError, jwt
from passlib.crypto.digest import pbkdf2_hmac
from passlib.utils import consteq

from .config import Settings

PBKDF2_DIGEST = "sha512"
PBKDF2_ROUNDS = 10_000
PBKDF2_KEYLEN = 64
SALT_BYTES = 16


# -------------------
# Password hashing
# -------------------
def _derive(password: str, salt_hex: str) -> str:
    raw = pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode("utf-8"),
        bytes.fromhex(salt_hex),
        PBKDF2_ROUNDS,
        PBKDF2_KEYLEN,
    )
    return raw.hex()


def hash_password(password: str) -> Tuple[str, str]:
    """Return (digest_hex, salt_hex) for a fresh random salt."""
    salt = secrets.token_bytes(SALT_BYTES).hex()
    return _derive(password, salt), salt


def verify_password(password: str, digest: str, salt: str) -> bool:
    if not digest or not salt:
        return False
    try:
        candidate = _derive(password, salt)
    except ValueError:
        # salt on disk is not hex
        return False
    return consteq(candidate, digest)


# -------------------
# Tokens
# -------------------
def create_token(user: Dict[str, Any], settings: Settings, expires_in: Optional[timedelta] = None) -> str:
    ttl = expires_in if expires_in is not None else timedelta(minutes=settings.jwt_expire_minutes)
    exp = datetime.now(timezone.utc) + ttl
    payload = {"sub": str(user["id"]), "email": user.get("email"), "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    """Verified payload, or None for malformed, forged or expired tokens."""
    if not token:
        return None
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except JWTError:
        return None
    user_id = data.get("sub")
    if not user_id:
        return None
    return {"id": user_id, "email": data.get("email"), "exp": data.get("exp")}
