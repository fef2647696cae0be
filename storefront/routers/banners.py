from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models, schemas
from ..auth import get_admin_user
from ..database import get_db
from ..services import banners
from ..utils import success_response

router = APIRouter(prefix="/banners", tags=["banners"])


@router.get("")
async def list_banners(
    status: Optional[str] = "active",
    sort: str = "priority",
    page: int = 1,
    limit: int = 10,
    db: AsyncSession = Depends(get_db),
):
    return success_response(await banners.list_banners(db, status, sort, page, limit), "Banners retrieved")


@router.get("/{banner_id}")
async def get_banner(banner_id: int, db: AsyncSession = Depends(get_db)):
    banner = await banners.get_banner(db, banner_id)
    return success_response(schemas.BannerOut.model_validate(banner), "Banner retrieved")


@router.post("")
async def create_banner(
    body: schemas.BannerCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    banner = await banners.create_banner(db, body)
    return success_response(schemas.BannerOut.model_validate(banner), "Banner created successfully", status.HTTP_201_CREATED)


@router.put("/{banner_id}")
async def update_banner(
    banner_id: int,
    body: schemas.BannerUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    banner = await banners.update_banner(db, banner_id, body)
    return success_response(schemas.BannerOut.model_validate(banner), "Banner updated successfully")


@router.delete("/{banner_id}")
async def delete_banner(
    banner_id: int,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    await banners.delete_banner(db, banner_id)
    return success_response(None, "Banner deleted successfully")
