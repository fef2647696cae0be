from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import models, schemas
from ..errors import bad_request, not_found
from ..utils import clamp_page, pagination_meta
from ..validation import missing_fields
from .catalog import paginate

Banner = models.Banner

BANNER_SORTS = {
    "priority": (Banner.priority.desc(), Banner.created_at.desc(), Banner.id.desc()),
    "recent": (Banner.created_at.desc(), Banner.id.desc()),
    "oldest": (Banner.created_at.asc(), Banner.id.asc()),
}


async def list_banners(db: AsyncSession, status: Optional[str], sort: str, page: int, limit: int) -> dict:
    page, limit, _ = clamp_page(page, limit, default_limit=10)
    query = select(Banner)
    if status and status != "all":
        query = query.where(Banner.status == status)
    banners, total = await paginate(db, query, BANNER_SORTS.get(sort, BANNER_SORTS["priority"]), page, limit)
    return {
        "banners": [schemas.BannerOut.model_validate(b) for b in banners],
        "pagination": pagination_meta(page, limit, total),
    }


async def get_banner(db: AsyncSession, banner_id: int) -> models.Banner:
    banner = await db.get(Banner, banner_id)
    if banner is None:
        raise not_found("Banner not found", "BANNER_NOT_FOUND")
    return banner


async def create_banner(db: AsyncSession, body: schemas.BannerCreate) -> models.Banner:
    missing = missing_fields(body.model_dump(), ["title", "image"])
    if missing:
        raise bad_request(f"Missing required fields: {', '.join(missing)}", "MISSING_FIELDS")
    banner = Banner(
        title=body.title,
        description=body.description,
        image=body.image,
        url=body.url,
        status=body.status.value,
        priority=body.priority,
    )
    db.add(banner)
    await db.commit()
    return banner


async def update_banner(db: AsyncSession, banner_id: int, body: schemas.BannerUpdate) -> models.Banner:
    banner = await get_banner(db, banner_id)
    for field, value in body.model_dump(exclude_none=True).items():
        setattr(banner, field, value.value if field == "status" else value)
    await db.commit()
    return banner


async def delete_banner(db: AsyncSession, banner_id: int):
    banner = await get_banner(db, banner_id)
    await db.delete(banner)
    await db.commit()
