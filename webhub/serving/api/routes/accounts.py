"""
Account Endpoints

Signup, login and profile reads. Profile reads award newly earned badges.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.connection import get_db_dependency
from webhub.security import get_current_user_id
from webhub.services import accounts

router = APIRouter()


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


@router.post("/auth/signup", status_code=201)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    result = await accounts.signup(db, body.email, body.password, body.name)
    return {"success": True, **result}


@router.post("/auth/login")
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    result = await accounts.login(db, body.email, body.password)
    return {"success": True, **result}


@router.get("/auth/me")
async def me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """The caller's own profile, including email."""
    return {"success": True, "user": await accounts.get_profile(db, user_id, include_email=True)}


@router.get("/users/{user_id}")
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    return {"success": True, "user": await accounts.get_profile(db, user_id)}
