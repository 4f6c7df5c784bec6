"""
Password hashing and bearer tokens for the TaskFlow Pro API.

Passwords are stored as ``pbkdf2_sha256$<rounds>$<salt>$<hex digest>``.
Access tokens are compact HS256 JWTs carrying the username (``sub``), the
role and the user id. Secrets and lifetimes are read from the environment
on every call so tests and the worker can change them at runtime.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

HASH_SCHEME = "pbkdf2_sha256"
DEFAULT_HASH_ROUNDS = 120_000
DEFAULT_TOKEN_MINUTES = 720
DEV_JWT_SECRET = "dev-jwt-secret-change-me"
_JWT_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _unb64(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _pbkdf2(password: str, salt: str, rounds: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), rounds).hex()


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    rounds = int(os.getenv("TASKFLOW_PASSWORD_HASH_ROUNDS", str(DEFAULT_HASH_ROUNDS)))
    salt = secrets.token_hex(16)
    return "$".join([HASH_SCHEME, str(rounds), salt, _pbkdf2(password, salt, rounds)])


def verify_password(password: str, encoded: str) -> bool:
    parts = (encoded or "").split("$")
    if len(parts) != 4 or parts[0] != HASH_SCHEME or not parts[1].isdigit():
        return False
    _, rounds, salt, expected = parts
    return secrets.compare_digest(_pbkdf2(password, salt, int(rounds)), expected)


def _jwt_secret() -> str:
    secret = (os.getenv("TASKFLOW_JWT_SECRET") or "").strip()
    if secret:
        return secret
    env = (os.getenv("TASKFLOW_ENV") or os.getenv("APP_ENV") or "dev").strip().lower()
    # prod never signs with the dev fallback
    return "" if env == "prod" else DEV_JWT_SECRET


def _token_minutes() -> int:
    try:
        return max(1, int(os.getenv("TASKFLOW_JWT_EXP_MIN", str(DEFAULT_TOKEN_MINUTES))))
    except ValueError:
        return DEFAULT_TOKEN_MINUTES


def _signature(signing_input: str, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def _segment(data: dict) -> str:
    return _b64(json.dumps(data, separators=(",", ":")).encode("utf-8"))


def create_access_token(*, sub: str, role: str, user_id: str) -> str:
    secret = _jwt_secret()
    if not secret:
        raise RuntimeError("TASKFLOW_JWT_SECRET is required when auth is enabled")
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": sub,
        "role": role,
        "user_id": user_id,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=_token_minutes())).timestamp()),
    }
    signing_input = f"{_segment(_JWT_HEADER)}.{_segment(claims)}"
    return f"{signing_input}.{_b64(_signature(signing_input, secret))}"


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; raises ValueError on any problem."""
    secret = _jwt_secret()
    if not secret:
        raise ValueError("JWT secret not configured")
    try:
        header_part, claims_part, signature_part = token.split(".")
    except ValueError:
        raise ValueError("Malformed token")
    signing_input = f"{header_part}.{claims_part}"
    if not secrets.compare_digest(_signature(signing_input, secret), _unb64(signature_part)):
        raise ValueError("Invalid signature")
    header = json.loads(_unb64(header_part).decode("utf-8"))
    if not isinstance(header, dict) or header.get("alg") != _JWT_HEADER["alg"]:
        raise ValueError("Unsupported token algorithm")
    claims = json.loads(_unb64(claims_part).decode("utf-8"))
    if not isinstance(claims, dict):
        raise ValueError("Invalid payload")
    expires = int(claims.get("exp") or 0)
    if expires <= 0:
        raise ValueError("Missing exp")
    if datetime.now(timezone.utc).timestamp() >= expires:
        raise ValueError("Token expired")
    return claims
