import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from core.utils.authentication import login, validate_user
from core.utils.get_current_user import get_current_user

router = APIRouter(tags=["Authentication"], prefix="/auth")
logger = logging.getLogger(__name__)


class LoginSubmission(BaseModel):
    username: str
    password: str


class CurrentUser(BaseModel):
    id: int
    username: str
    role: str


class TokenResponse(BaseModel):
    access_token: str
    user: CurrentUser


@router.post("/login", response_model=TokenResponse)
async def login_for_access_token(credentials: LoginSubmission):
    user = validate_user(credentials.username, credentials.password)
    if not user:
        logger.warning(f"Failed login attempt for {credentials.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return login(user)


@router.get("/me", response_model=CurrentUser)
def get_me(user: dict = Depends(get_current_user)):
    return user
