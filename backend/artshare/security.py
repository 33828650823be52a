# Password hashing, session tokens, auth cookie

import hmac
import logging

from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2
from Crypto.Random import get_random_bytes
from flask import current_app
from flask_jwt_extended import (
    create_access_token,
    decode_token,
    set_access_cookies,
    unset_access_cookies,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

PASSWORD_ITERATIONS = 200_000
_HASH_SCHEME = 'pbkdf2_sha256'

# --- Password hashing (PBKDF2-SHA256) ---

def _derive_key(password: str, salt: bytes, iterations: int = PASSWORD_ITERATIONS) -> bytes:
    return PBKDF2(password, salt, dkLen=32, count=iterations, hmac_hash_module=SHA256)


def hash_password(password: str, iterations: int = PASSWORD_ITERATIONS) -> str:
    """Return a salted one-way hash of ``password`` as ``scheme$iterations$salt$key``."""
    salt = get_random_bytes(16)
    key = _derive_key(password, salt, iterations)
    return f'{_HASH_SCHEME}${iterations}${salt.hex()}${key.hex()}'


def check_password(password: str, password_hash: str) -> bool:
    try:
        scheme, iterations, salt_hex, key_hex = password_hash.split('$')
        if scheme != _HASH_SCHEME:
            return False
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(key_hex)
        rounds = int(iterations)
    except (AttributeError, ValueError):
        logging.debug('Stored password hash is malformed')
        return False
    return hmac.compare_digest(_derive_key(password, salt, rounds), expected)


# --- Session tokens (signed JWT) ---

def issue_token(user_id, expires_delta=None) -> str:
    """Sign a token for ``user_id`` valid for ``JWT_ACCESS_TOKEN_EXPIRES`` (7 days)."""
    if expires_delta is None:
        expires_delta = current_app.config['JWT_ACCESS_TOKEN_EXPIRES']
    return create_access_token(identity=str(user_id), expires_delta=expires_delta)


def verify_token(token: str):
    """Return the identity bound to ``token``, or None if it is malformed, forged or expired."""
    if not token:
        return None
    try:
        claims = decode_token(token)
    except (PyJWTError, JWTExtendedException) as e:
        logging.debug(f'Rejected session token: {e.__class__.__name__}')
        return None
    return claims.get(current_app.config['JWT_IDENTITY_CLAIM'])


def attach_session_cookie(response, token: str):
    """Set the auth cookie on ``response``; an empty token clears it (logout)."""
    if token:
        max_age = int(current_app.config['JWT_ACCESS_TOKEN_EXPIRES'].total_seconds())
        set_access_cookies(response, token, max_age=max_age)
    else:
        unset_access_cookies(response)
    return response
