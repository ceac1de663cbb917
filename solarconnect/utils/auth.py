# solarconnect/utils/auth.py
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from typing import Optional
import asyncpg

from ..database import get_db
from ..config import settings
from ..errors import UnauthorizedError
from ..queries import user_queries

# Constants
SECRET_KEY = settings.secret_key
ALGORITHM = settings.algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error is off so a missing token surfaces as UnauthorizedError
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> Optional[int]:
    """Return the user id carried by a valid token, else None"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        return None
    return int(subject)

async def authenticate_user(username: str, password: str, conn: asyncpg.Connection):
    user = await user_queries.get_user_by_username(conn, username)
    if user and verify_password(password, user["password_hash"]):
        return user
    return None

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    conn: asyncpg.Connection = Depends(get_db)
) -> dict:
    """Resolve the bearer token to the user row it was issued for"""
    if not token:
        raise UnauthorizedError("Not authenticated")

    user_id = decode_access_token(token)
    if user_id is None:
        raise UnauthorizedError("Could not validate credentials")

    user = await user_queries.get_user_by_id(conn, user_id)
    if user is None:
        raise UnauthorizedError("User no longer exists")

    user.pop("password_hash", None)
    return user

__all__ = [
    "oauth2_scheme",
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "decode_access_token",
    "authenticate_user",
    "get_current_user",
    "ACCESS_TOKEN_EXPIRE_MINUTES"
]
