from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models, schemas
from ..auth import get_admin_user
from ..database import get_db
from ..services import categories
from ..utils import success_response

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
async def list_categories(db: AsyncSession = Depends(get_db)):
    return success_response(await categories.list_categories(db), "Categories retrieved")


@router.get("/{category_id}/subcategories")
async def list_subcategories(category_id: int, db: AsyncSession = Depends(get_db)):
    return success_response(await categories.list_subcategories(db, category_id), "Subcategories retrieved")


@router.get("/{id_or_slug}")
async def get_category(id_or_slug: str, db: AsyncSession = Depends(get_db)):
    return success_response(await categories.get_category_detail(db, id_or_slug), "Category retrieved")


@router.post("")
async def create_category(
    body: schemas.CategoryCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    data = await categories.create_category(db, body)
    return success_response(data, "Category created successfully", status.HTTP_201_CREATED)


@router.put("/{category_id}")
async def update_category(
    category_id: int,
    body: schemas.CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    data = await categories.update_category(db, category_id, body)
    return success_response(data, "Category updated successfully")


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    await categories.delete_category(db, category_id)
    return success_response(None, "Category deleted successfully")


@router.post("/{category_id}/subcategories")
async def create_subcategory(
    category_id: int,
    body: schemas.SubCategoryCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    data = await categories.create_subcategory(db, category_id, body)
    return success_response(data, "Subcategory created successfully", status.HTTP_201_CREATED)
