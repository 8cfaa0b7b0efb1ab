from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jwt import PyJWTError

from core.utils.authentication import decode_access_token, get_user_by_id

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def get_current_user(token: Optional[str] = Depends(oauth2_scheme)) -> dict:
    if token is None:
        raise credentials_exception

    try:
        payload = decode_access_token(token)
        owner_id: str = payload.get("sub")
        if not owner_id:
            raise credentials_exception
        user = get_user_by_id(int(owner_id))
    except (PyJWTError, ValueError):
        raise credentials_exception

    if user is None:
        raise credentials_exception
    return user
