from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models, schemas
from ..auth import get_current_user
from ..database import get_db
from ..services import reviews
from ..utils import success_response

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/products/{product_id}/reviews")
async def list_product_reviews(
    product_id: int,
    sort: str = "recent",
    page: int = 1,
    limit: int = 10,
    db: AsyncSession = Depends(get_db),
):
    data = await reviews.list_product_reviews(db, product_id, sort, page, limit)
    return success_response(data, "Reviews retrieved")


@router.get("/user")
async def list_my_reviews(
    page: int = 1,
    limit: int = 10,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    data = await reviews.list_user_reviews(db, current_user.id, page, limit)
    return success_response(data, "Reviews retrieved")


@router.post("")
async def create_review(
    body: schemas.ReviewCreate,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    review = await reviews.create_review(db, current_user, body)
    return success_response(schemas.ReviewOut.from_review(review), "Review created successfully", status.HTTP_201_CREATED)


@router.put("/{review_id}")
async def update_review(
    review_id: int,
    body: schemas.ReviewUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    review = await reviews.update_review(db, current_user, review_id, body)
    return success_response(schemas.ReviewOut.from_review(review), "Review updated successfully")


@router.delete("/{review_id}")
async def delete_review(
    review_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    await reviews.delete_review(db, current_user, review_id)
    return success_response(None, "Review deleted successfully")
