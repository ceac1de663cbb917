# solarconnect/routes/auth.py
from fastapi import APIRouter, Depends, status
import asyncpg
import logging

from ..database import get_db
from ..errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from ..models.auth import ChangePasswordRequest, Token, UserLogin, UserRegister
from ..models.user import UserOut, UserUpdate
from ..queries import user_queries
from ..utils.auth import (
    authenticate_user,
    create_access_token,
    get_current_user,
    get_password_hash,
    verify_password
)
from ..utils.permissions import ensure_self_or_admin

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


def _issue_token(user: dict) -> dict:
    access_token = create_access_token(data={"sub": str(user["id"]), "role": user["role"]})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user
    }


@auth_router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserRegister,
    conn: asyncpg.Connection = Depends(get_db)
):
    if payload.password != payload.confirm_password:
        raise ValidationError("Passwords do not match")

    if await user_queries.get_user_by_username(conn, payload.username):
        raise ConflictError("Username already exists")
    if await user_queries.get_user_by_email(conn, payload.email):
        raise ConflictError("Email already registered")

    try:
        user = await user_queries.create_user(
            conn,
            username=payload.username,
            password_hash=get_password_hash(payload.password),
            role=payload.role,
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            city=payload.city,
            address=payload.address,
            profile_image=payload.profile_image
        )
    except asyncpg.UniqueViolationError:
        raise ConflictError("Username or email already registered")

    logger.info(f"Registered {user['role']} account {user['username']} (id {user['id']})")
    return _issue_token(user)


@auth_router.post("/login", response_model=Token)
async def login(
    payload: UserLogin,
    conn: asyncpg.Connection = Depends(get_db)
):
    user = await authenticate_user(payload.username, payload.password, conn)
    if not user:
        raise UnauthorizedError("Invalid credentials")
    return _issue_token(user)


@auth_router.post("/logout")
async def logout():
    # Tokens are stateless; the client discards its copy
    return {"message": "Logged out successfully"}


@auth_router.get("/user", response_model=UserOut)
async def get_authenticated_user(current_user: dict = Depends(get_current_user)):
    return current_user


@auth_router.get("/profile/{user_id}", response_model=UserOut)
async def get_profile(
    user_id: int,
    current_user: dict = Depends(get_current_user),
    conn: asyncpg.Connection = Depends(get_db)
):
    ensure_self_or_admin(current_user, user_id)
    user = await user_queries.get_user_by_id(conn, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@auth_router.patch("/profile/{user_id}", response_model=UserOut)
async def update_profile(
    user_id: int,
    update: UserUpdate,
    current_user: dict = Depends(get_current_user),
    conn: asyncpg.Connection = Depends(get_db)
):
    ensure_self_or_admin(current_user, user_id)
    fields = update.model_dump(exclude_unset=True)

    if fields.get("email"):
        owner = await user_queries.get_user_by_email(conn, fields["email"])
        if owner and owner["id"] != user_id:
            raise ConflictError("Email already registered")

    try:
        user = await user_queries.update_user(conn, user_id, fields)
    except asyncpg.UniqueViolationError:
        raise ConflictError("Email already registered")
    if not user:
        raise NotFoundError("User not found")
    return user


@auth_router.post("/change-password/{user_id}", status_code=status.HTTP_200_OK)
async def change_password(
    user_id: int,
    payload: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
    conn: asyncpg.Connection = Depends(get_db)
):
    ensure_self_or_admin(current_user, user_id)
    if payload.new_password != payload.confirm_password:
        raise ValidationError("New passwords do not match")

    user = await user_queries.get_user_by_id(conn, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(payload.current_password, user["password_hash"]):
        raise UnauthorizedError("Current password is incorrect")

    await user_queries.update_password(conn, user_id, get_password_hash(payload.new_password))
    return {"message": "Password changed successfully"}


__all__ = ["auth_router"]
