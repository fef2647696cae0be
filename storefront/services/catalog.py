import json
import logging
from typing import Optional

from sqlalchemy import String, cast, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import cache, models, schemas
from ..errors import bad_request, not_found
from ..utils import LIKE_ESCAPE, clamp_page, like_pattern, pagination_meta
from ..validation import missing_fields

logger = logging.getLogger(__name__)

Product = models.Product

SORT_ORDERS = {
    "price-asc": Product.price.asc(),
    "price-desc": Product.price.desc(),
    "rating": Product.rating.desc(),
    "newest": Product.created_at.desc(),
    "best-seller": Product.review_count.desc(),
}
DEFAULT_SORT = "newest"
SEARCH_MIN_LENGTH = 2
SEARCH_MAX_RESULTS = 50


def search_clause(term: str):
    """Case-insensitive literal match on name or description, or an exact tag."""
    pattern = like_pattern(term)
    return or_(
        Product.name.ilike(pattern, escape=LIKE_ESCAPE),
        Product.description.ilike(pattern, escape=LIKE_ESCAPE),
        cast(Product.tags, String).ilike(like_pattern(term, '%"{}"%'), escape=LIKE_ESCAPE),
    )


def filtered_query(filters: schemas.ProductQuery):
    query = select(Product)
    if filters.category is not None:
        query = query.where(Product.category_id == filters.category)
    if filters.sub_category is not None:
        query = query.where(Product.sub_category_id == filters.sub_category)
    if filters.min_price is not None:
        query = query.where(Product.price >= filters.min_price)
    if filters.max_price is not None:
        query = query.where(Product.price <= filters.max_price)
    if filters.rating is not None:
        query = query.where(Product.rating >= filters.rating)
    if filters.search:
        query = query.where(search_clause(filters.search))
    return query


async def paginate(db: AsyncSession, query, order_by, page: int, limit: int):
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(*order_by).offset((page - 1) * limit).limit(limit))
    return result.scalars().all(), total


def product_summary(product: models.Product) -> dict:
    """Listing shape: the product without its gallery, primary image only."""
    return schemas.ProductOut.model_validate(product).model_dump(mode="json", exclude={"images"})


async def list_products(db: AsyncSession, filters: schemas.ProductQuery) -> dict:
    page, limit, _ = clamp_page(filters.page, filters.limit)
    filters = filters.model_copy(update={"page": page, "limit": limit})

    cache_key = cache.PRODUCTS_PREFIX + json.dumps(filters.model_dump(), sort_keys=True)
    cached = cache.get_json(cache_key)
    if cached is not None:
        return cached

    order_by = (SORT_ORDERS.get(filters.sort, SORT_ORDERS[DEFAULT_SORT]), Product.id.desc())
    products, total = await paginate(db, filtered_query(filters), order_by, page, limit)
    data = {
        "products": [product_summary(p) for p in products],
        "pagination": pagination_meta(page, limit, total),
    }
    cache.set_json(cache_key, data)
    return data


async def search_products(db: AsyncSession, q: Optional[str], limit: int = 10) -> list:
    if not q or len(q.strip()) < SEARCH_MIN_LENGTH:
        raise bad_request("Search query must be at least 2 characters", "INVALID_SEARCH")
    limit = max(1, min(SEARCH_MAX_RESULTS, limit))
    result = await db.execute(
        select(Product).where(search_clause(q.strip())).order_by(Product.rating.desc(), Product.id).limit(limit)
    )
    return [
        {"id": p.id, "name": p.name, "price": p.price, "image": p.primary_image, "rating": p.rating}
        for p in result.scalars().all()
    ]


async def get_product(db: AsyncSession, product_id: int, refresh: bool = False) -> models.Product:
    query = select(Product).where(Product.id == product_id)
    if refresh:
        query = query.execution_options(populate_existing=True)
    product = (await db.execute(query)).scalar_one_or_none()
    if product is None:
        raise not_found("Product not found", "PRODUCT_NOT_FOUND")
    return product


async def _check_refs(db: AsyncSession, category_id: Optional[int], sub_category_id: Optional[int]):
    if category_id is not None and await db.get(models.Category, category_id) is None:
        raise not_found("Category not found", "CATEGORY_NOT_FOUND")
    if sub_category_id is None:
        return
    sub = await db.get(models.SubCategory, sub_category_id)
    if sub is None:
        raise not_found("SubCategory not found", "SUBCATEGORY_NOT_FOUND")
    if category_id is not None and sub.category_id != category_id:
        raise bad_request("SubCategory does not belong to this category", "SUBCATEGORY_MISMATCH")


def _gallery(images) -> list:
    """Image rows with exactly one primary: the first flagged one, else the first image."""
    rows = [models.ProductImage(url=img.url, is_primary=img.is_primary) for img in images]
    primary = next((row for row in rows if row.is_primary), rows[0] if rows else None)
    for row in rows:
        row.is_primary = row is primary
    return rows


async def create_product(db: AsyncSession, body: schemas.ProductCreate) -> models.Product:
    missing = missing_fields(body.model_dump(), ["name", "description", "price", "category_id", "stock"])
    if missing:
        raise bad_request(f"Missing required fields: {', '.join(missing)}", "MISSING_FIELDS")
    await _check_refs(db, body.category_id, body.sub_category_id)

    product = Product(
        name=body.name,
        description=body.description,
        price=body.price,
        original_price=body.original_price if body.original_price is not None else body.price,
        category_id=body.category_id,
        sub_category_id=body.sub_category_id,
        stock=body.stock,
        image=body.image,
        tags=body.tags or [],
        specs=body.specs or {},
        is_best_seller=bool(body.is_best_seller),
        is_new_arrival=body.is_new_arrival is not False,
        images=_gallery(body.images or []),
    )
    db.add(product)
    await db.commit()
    cache.invalidate_products()
    logger.info("Product %s created", product.id)
    return await get_product(db, product.id, refresh=True)


async def update_product(db: AsyncSession, product_id: int, body: schemas.ProductUpdate) -> models.Product:
    product = await get_product(db, product_id)
    changes = body.model_dump(exclude_none=True, exclude={"images"})
    if "category_id" in changes or "sub_category_id" in changes:
        await _check_refs(
            db,
            changes.get("category_id", product.category_id),
            changes.get("sub_category_id", product.sub_category_id),
        )

    for field, value in changes.items():
        setattr(product, field, value)
    if body.images is not None:
        # Replaces the whole gallery; orphaned rows are deleted
        product.images = _gallery(body.images)
    if "stock" in changes:
        product.version += 1
    await db.commit()
    cache.invalidate_products()
    return await get_product(db, product_id, refresh=True)


async def delete_product(db: AsyncSession, product_id: int):
    """Delete a product with its reviews, cart lines and gallery; refused once it has been ordered."""
    product = await get_product(db, product_id)
    ordered = await db.execute(
        select(func.count(models.OrderItem.id)).where(models.OrderItem.product_id == product_id)
    )
    if ordered.scalar_one() > 0:
        raise bad_request("Cannot delete product with existing orders", "PRODUCT_HAS_ORDERS")

    await db.execute(delete(models.Review).where(models.Review.product_id == product_id))
    await db.execute(delete(models.CartItem).where(models.CartItem.product_id == product_id))
    # Gallery rows go with the product through the delete-orphan cascade
    await db.delete(product)
    await db.commit()
    cache.invalidate_products()
    logger.info("Product %s deleted", product_id)
