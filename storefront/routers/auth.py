from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models, schemas
from ..auth import RefreshTokenRegistry, get_current_user, get_token_registry
from ..database import get_db
from ..services import accounts
from ..utils import success_response

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register")
async def register(
    body: schemas.RegisterRequest,
    db: AsyncSession = Depends(get_db),
    registry: RefreshTokenRegistry = Depends(get_token_registry),
):
    data = await accounts.register(db, registry, body)
    return success_response(data, "User registered successfully", status.HTTP_201_CREATED)


@router.post("/login")
async def login(
    body: schemas.LoginRequest,
    db: AsyncSession = Depends(get_db),
    registry: RefreshTokenRegistry = Depends(get_token_registry),
):
    data = await accounts.login(db, registry, body)
    return success_response(data, "Login successful")


@router.post("/refresh")
async def refresh(
    body: schemas.RefreshRequest,
    db: AsyncSession = Depends(get_db),
    registry: RefreshTokenRegistry = Depends(get_token_registry),
):
    data = await accounts.refresh(db, registry, body.refresh_token)
    return success_response(data, "Token refreshed")


@router.post("/logout")
async def logout(body: schemas.RefreshRequest, registry: RefreshTokenRegistry = Depends(get_token_registry)):
    accounts.logout(registry, body.refresh_token)
    return success_response(None, "Logged out successfully")


@router.get("/me")
async def me(current_user: models.User = Depends(get_current_user)):
    return success_response(schemas.UserOut.model_validate(current_user), "Profile retrieved")
