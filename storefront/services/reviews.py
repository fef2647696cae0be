import logging
import math
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import cache, models, schemas
from ..errors import bad_request, forbidden, not_found
from ..utils import clamp_page, pagination_meta
from .catalog import get_product

logger = logging.getLogger(__name__)

Review = models.Review

REVIEW_SORTS = {
    "recent": (Review.created_at.desc(), Review.id.desc()),
    "rating-high": (Review.rating.desc(), Review.id.desc()),
    "rating-low": (Review.rating.asc(), Review.id.desc()),
}


def average_rating(ratings: List[int]) -> float:
    """Mean rating rounded half-up to one decimal; 0 when there are no ratings."""
    if not ratings:
        return 0
    return math.floor(sum(ratings) / len(ratings) * 10 + 0.5) / 10


def _validated_rating(rating) -> int:
    if rating is None or not math.isfinite(rating) or rating != int(rating) or not 1 <= rating <= 5:
        raise bad_request("Rating must be an integer between 1 and 5", "INVALID_RATING")
    return int(rating)


async def recompute_product_rating(db: AsyncSession, product_id: int):
    """Re-read every rating of the product and write rating/review_count back."""
    result = await db.execute(select(Review.rating).where(Review.product_id == product_id))
    ratings = list(result.scalars().all())
    product = await db.get(models.Product, product_id)
    if product is None:
        return
    product.rating = average_rating(ratings)
    product.review_count = len(ratings)


async def _has_delivered_purchase(db: AsyncSession, user_id: int, product_id: int) -> bool:
    result = await db.execute(
        select(models.OrderItem.id)
        .join(models.Order, models.Order.id == models.OrderItem.order_id)
        .where(
            models.OrderItem.product_id == product_id,
            models.Order.user_id == user_id,
            models.Order.status == models.OrderStatus.DELIVERED.value,
        )
        .limit(1)
    )
    return result.first() is not None


async def _load_review(db: AsyncSession, review_id: int) -> models.Review:
    result = await db.execute(
        select(Review).where(Review.id == review_id).execution_options(populate_existing=True)
    )
    review = result.scalar_one_or_none()
    if review is None:
        raise not_found("Review not found", "REVIEW_NOT_FOUND")
    return review


async def _commit(db: AsyncSession):
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    cache.invalidate_products()


async def create_review(db: AsyncSession, user: models.User, body: schemas.ReviewCreate) -> models.Review:
    if not body.product_id:
        raise bad_request("Product ID is required", "MISSING_PRODUCT_ID")
    rating = _validated_rating(body.rating)
    await get_product(db, body.product_id)

    existing = await db.execute(
        select(Review.id).where(Review.product_id == body.product_id, Review.user_id == user.id)
    )
    if existing.first() is not None:
        raise bad_request("You have already reviewed this product", "DUPLICATE_REVIEW")

    review = Review(
        product_id=body.product_id,
        user_id=user.id,
        rating=rating,
        comment=body.comment or None,
        verified_purchase=await _has_delivered_purchase(db, user.id, body.product_id),
    )
    db.add(review)
    await db.flush()
    await recompute_product_rating(db, body.product_id)
    await _commit(db)
    logger.info("Review %s created for product %s", review.id, body.product_id)
    return await _load_review(db, review.id)


async def update_review(db: AsyncSession, user: models.User, review_id: int, body: schemas.ReviewUpdate) -> models.Review:
    review = await _load_review(db, review_id)
    if review.user_id != user.id:
        raise forbidden()

    if body.rating is not None:
        review.rating = _validated_rating(body.rating)
    if body.comment is not None:
        review.comment = body.comment
    await db.flush()
    await recompute_product_rating(db, review.product_id)
    await _commit(db)
    return await _load_review(db, review_id)


async def delete_review(db: AsyncSession, user: models.User, review_id: int):
    review = await _load_review(db, review_id)
    if review.user_id != user.id and user.role != models.Role.ADMIN.value:
        raise forbidden()

    product_id = review.product_id
    await db.delete(review)
    await db.flush()
    await recompute_product_rating(db, product_id)
    await _commit(db)
    logger.info("Review %s deleted", review_id)


async def list_product_reviews(db: AsyncSession, product_id: int, sort: str, page: int, limit: int) -> dict:
    await get_product(db, product_id)
    return await _paginated(db, Review.product_id == product_id, REVIEW_SORTS.get(sort, REVIEW_SORTS["recent"]), page, limit)


async def list_user_reviews(db: AsyncSession, user_id: int, page: int, limit: int) -> dict:
    return await _paginated(db, Review.user_id == user_id, REVIEW_SORTS["recent"], page, limit)


async def _paginated(db: AsyncSession, condition, order_by, page: Optional[int], limit: Optional[int]) -> dict:
    page, limit, offset = clamp_page(page, limit, default_limit=10)
    total = (await db.execute(select(func.count(Review.id)).where(condition))).scalar_one()
    result = await db.execute(select(Review).where(condition).order_by(*order_by).offset(offset).limit(limit))
    return {
        "reviews": [schemas.ReviewOut.from_review(r) for r in result.scalars().all()],
        "pagination": pagination_meta(page, limit, total),
    }
