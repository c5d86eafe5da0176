from __future__ import annotations

import logging

from passlib.context import CryptContext
from passlib.exc import UnknownHashError

logger = logging.getLogger(__name__)

# pbkdf2_sha256 para hashes novos; bcrypt só para verificar hashes importados.
_pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

HASH_PREFIXES = ("$pbkdf2-sha256$", "$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def password_looks_hashed(password: str) -> bool:
    return password.startswith(HASH_PREFIXES)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False

    try:
        return _pwd_context.verify(password, password_hash)
    except (UnknownHashError, ValueError):
        logger.warning("password hash could not be verified (unsupported format)")
        return False
