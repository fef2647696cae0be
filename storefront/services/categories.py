import logging

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import cache, models, schemas
from ..errors import bad_request, not_found

logger = logging.getLogger(__name__)

DEFAULT_ICON = "📦"


async def _product_counts(db: AsyncSession) -> dict:
    result = await db.execute(
        select(models.Product.category_id, func.count(models.Product.id)).group_by(models.Product.category_id)
    )
    return dict(result.all())


def _category_payload(category: models.Category, product_count: int = 0) -> dict:
    out = schemas.CategoryOut.model_validate(category)
    out.product_count = product_count
    return out.model_dump()


async def list_categories(db: AsyncSession) -> dict:
    result = await db.execute(select(models.Category).order_by(models.Category.id))
    counts = await _product_counts(db)
    categories = [_category_payload(c, counts.get(c.id, 0)) for c in result.scalars().all()]
    return {"categories": categories, "total": len(categories)}


async def get_category(db: AsyncSession, category_id: int, refresh: bool = False) -> models.Category:
    query = select(models.Category).where(models.Category.id == category_id)
    if refresh:
        query = query.execution_options(populate_existing=True)
    category = (await db.execute(query)).scalar_one_or_none()
    if category is None:
        raise not_found("Category not found", "CATEGORY_NOT_FOUND")
    return category


async def get_category_detail(db: AsyncSession, id_or_slug: str) -> dict:
    """Look a category up by numeric id or slug and include its products."""
    category = None
    if id_or_slug.isdigit():
        category = await db.get(models.Category, int(id_or_slug))
    if category is None:
        result = await db.execute(select(models.Category).where(models.Category.slug == id_or_slug))
        category = result.scalar_one_or_none()
    if category is None:
        raise not_found("Category not found", "CATEGORY_NOT_FOUND")

    products = (
        await db.execute(
            select(models.Product).where(models.Product.category_id == category.id).order_by(models.Product.id)
        )
    ).scalars().all()
    payload = _category_payload(category, len(products))
    payload["products"] = [
        {
            "id": p.id,
            "name": p.name,
            "price": p.price,
            "stock": p.stock,
            "rating": p.rating,
            "review_count": p.review_count,
            "image": p.primary_image,
        }
        for p in products
    ]
    return payload


async def _slug_taken(db: AsyncSession, model, slug: str) -> bool:
    result = await db.execute(select(model.id).where(model.slug == slug))
    return result.first() is not None


async def create_category(db: AsyncSession, body: schemas.CategoryCreate) -> dict:
    if not body.name or not body.slug:
        raise bad_request("Name and slug are required", "MISSING_FIELDS")
    if await _slug_taken(db, models.Category, body.slug):
        raise bad_request("Category with this slug already exists", "DUPLICATE_SLUG")

    category = models.Category(name=body.name, slug=body.slug, icon=body.icon or DEFAULT_ICON)
    db.add(category)
    await db.commit()
    logger.info("Category %s created", category.slug)
    return _category_payload(await get_category(db, category.id, refresh=True))


async def update_category(db: AsyncSession, category_id: int, body: schemas.CategoryUpdate) -> dict:
    category = await get_category(db, category_id)
    if body.slug and body.slug != category.slug and await _slug_taken(db, models.Category, body.slug):
        raise bad_request("Category with this slug already exists", "DUPLICATE_SLUG")

    if body.name:
        category.name = body.name
    if body.slug:
        category.slug = body.slug
    if body.icon is not None:
        category.icon = body.icon
    await db.commit()
    cache.invalidate_products()
    counts = await _product_counts(db)
    return _category_payload(await get_category(db, category_id, refresh=True), counts.get(category_id, 0))


async def delete_category(db: AsyncSession, category_id: int):
    category = await get_category(db, category_id)
    counts = await _product_counts(db)
    if counts.get(category_id, 0) > 0:
        raise bad_request("Cannot delete category with products", "CATEGORY_HAS_PRODUCTS")

    for sub in list(category.subcategories):
        await db.delete(sub)
    await db.delete(category)
    await db.commit()
    logger.info("Category %s deleted", category_id)


async def list_subcategories(db: AsyncSession, category_id: int) -> dict:
    category = await get_category(db, category_id)
    subs = [schemas.SubCategoryOut.model_validate(s).model_dump() for s in category.subcategories]
    return {"category": category.name, "subcategories": subs, "total": len(subs)}


async def create_subcategory(db: AsyncSession, category_id: int, body: schemas.SubCategoryCreate) -> dict:
    if not body.name or not body.slug:
        raise bad_request("Name and slug are required", "MISSING_FIELDS")
    await get_category(db, category_id)
    if await _slug_taken(db, models.SubCategory, body.slug):
        raise bad_request("Subcategory with this slug already exists", "DUPLICATE_SLUG")

    sub = models.SubCategory(name=body.name, slug=body.slug, category_id=category_id)
    db.add(sub)
    await db.commit()
    logger.info("Subcategory %s created under category %s", sub.slug, category_id)
    return schemas.SubCategoryOut.model_validate(sub).model_dump()
