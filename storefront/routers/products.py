from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models, schemas
from ..auth import get_admin_user
from ..database import get_db
from ..services import catalog
from ..utils import success_response

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
async def list_products(
    category: Optional[int] = None,
    sub_category: Optional[int] = Query(None, alias="subCategory"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    rating: Optional[float] = None,
    search: Optional[str] = None,
    sort: str = "newest",
    page: int = 1,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
):
    filters = schemas.ProductQuery(
        category=category,
        sub_category=sub_category,
        min_price=min_price,
        max_price=max_price,
        rating=rating,
        search=search,
        sort=sort,
        page=page,
        limit=limit,
    )
    return success_response(await catalog.list_products(db, filters), "Products retrieved")


# Must be declared before /{product_id}
@router.get("/search")
async def search_products(q: Optional[str] = None, limit: int = 10, db: AsyncSession = Depends(get_db)):
    results = await catalog.search_products(db, q, limit)
    return success_response({"results": results, "total": len(results)}, "Search results")


@router.get("/{product_id}")
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await catalog.get_product(db, product_id)
    return success_response(schemas.ProductOut.model_validate(product), "Product retrieved")


@router.post("")
async def create_product(
    body: schemas.ProductCreate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    product = await catalog.create_product(db, body)
    return success_response(schemas.ProductOut.model_validate(product), "Product created successfully", status.HTTP_201_CREATED)


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    body: schemas.ProductUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    product = await catalog.update_product(db, product_id, body)
    return success_response(schemas.ProductOut.model_validate(product), "Product updated successfully")


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    await catalog.delete_product(db, product_id)
    return success_response(None, "Product deleted successfully")
