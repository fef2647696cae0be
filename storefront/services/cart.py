import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import models, schemas
from ..errors import bad_request, forbidden, not_found
from . import pricing
from .catalog import get_product

logger = logging.getLogger(__name__)

CartItem = models.CartItem


async def get_cart(db: AsyncSession, user_id: int) -> dict:
    """Cart lines joined with live product data plus the priced summary."""
    result = await db.execute(
        select(CartItem)
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.id)
        .execution_options(populate_existing=True)
    )
    items = result.scalars().all()
    subtotal = sum(item.product.price * item.quantity for item in items if item.product is not None)
    summary = pricing.totals(subtotal)
    summary["item_count"] = len(items)
    return {"items": [schemas.CartItemOut.model_validate(i) for i in items], "summary": summary}


async def _get_line(db: AsyncSession, user_id: int, product_id: int):
    result = await db.execute(
        select(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
    )
    return result.scalar_one_or_none()


async def _get_owned_item(db: AsyncSession, user_id: int, item_id: int) -> models.CartItem:
    item = await db.get(CartItem, item_id)
    if item is None:
        raise not_found("Cart item not found", "ITEM_NOT_FOUND")
    if item.user_id != user_id:
        raise forbidden()
    return item


async def _reload(db: AsyncSession, item_id: int) -> models.CartItem:
    result = await db.execute(
        select(CartItem).where(CartItem.id == item_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def add_item(db: AsyncSession, user_id: int, product_id: int, quantity: int = 1) -> models.CartItem:
    if not product_id:
        raise bad_request("Product ID is required", "MISSING_PRODUCT_ID")
    if quantity < 1:
        raise bad_request("Quantity must be at least 1", "INVALID_QUANTITY")

    product = await get_product(db, product_id)
    if product.stock < quantity:
        raise bad_request("Insufficient stock", "INSUFFICIENT_STOCK")

    line = await _get_line(db, user_id, product_id)
    if line:
        new_quantity = line.quantity + quantity
        if new_quantity > product.stock:
            raise bad_request("Insufficient stock", "INSUFFICIENT_STOCK")
        line.quantity = new_quantity
    else:
        line = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(line)

    await db.commit()
    return await _reload(db, line.id)


async def update_item(db: AsyncSession, user_id: int, item_id: int, quantity) -> models.CartItem:
    if quantity is None or quantity < 1:
        raise bad_request("Quantity must be at least 1", "INVALID_QUANTITY")

    item = await _get_owned_item(db, user_id, item_id)
    product = await get_product(db, item.product_id, refresh=True)
    if product.stock < quantity:
        raise bad_request("Insufficient stock", "INSUFFICIENT_STOCK")

    item.quantity = quantity
    await db.commit()
    return await _reload(db, item_id)


async def remove_item(db: AsyncSession, user_id: int, item_id: int):
    item = await _get_owned_item(db, user_id, item_id)
    await db.delete(item)
    await db.commit()


async def clear_cart(db: AsyncSession, user_id: int, commit: bool = True):
    await db.execute(delete(CartItem).where(CartItem.user_id == user_id))
    if commit:
        await db.commit()
