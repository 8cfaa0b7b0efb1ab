import hmac
import logging
from datetime import UTC, datetime, timedelta
from typing import Optional

import jwt

from constants import ACCESS_TOKEN_EXPIRE_MINUTES, APP_SECRET, AUTH_ALGORITHM

logger = logging.getLogger(__name__)

# static identities, passwords are compared in plain text
STATIC_USERS = [
    {'id': 1, 'username': 'dispatcher', 'password': 'password', 'role': 'dispatcher'},
    {'id': 2, 'username': 'driver', 'password': 'password', 'role': 'driver'},
]


def _public(user: dict) -> dict:
    return {key: value for key, value in user.items() if key != 'password'}


def _matches(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode('utf-8'), expected.encode('utf-8'))


def validate_user(username: str, password: str) -> Optional[dict]:
    for user in STATIC_USERS:
        username_ok = _matches(username, user['username'])
        password_ok = _matches(password, user['password'])
        if username_ok and password_ok:
            return _public(user)
    return None


def get_user_by_id(user_id: int) -> Optional[dict]:
    for user in STATIC_USERS:
        if user['id'] == user_id:
            return _public(user)
    return None


def create_access_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    expires_delta = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        'username': user['username'],
        'sub': str(user['id']),
        'role': user['role'],
        'exp': datetime.now(UTC) + expires_delta,
    }
    return jwt.encode(payload, APP_SECRET, algorithm=AUTH_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, APP_SECRET, algorithms=[AUTH_ALGORITHM])


def login(user: dict) -> dict:
    logger.info(f"Issuing access token for {user['username']}")
    return {
        'access_token': create_access_token(user),
        'user': user,
    }
