from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models, schemas
from ..auth import get_current_user
from ..database import get_db
from ..services import cart
from ..utils import success_response

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("")
async def view_cart(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return success_response(await cart.get_cart(db, current_user.id), "Cart retrieved")


@router.post("/items")
async def add_to_cart(
    item: schemas.CartItemAdd,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    line = await cart.add_item(db, current_user.id, item.product_id, item.quantity)
    return success_response(schemas.CartItemOut.model_validate(line), "Item added to cart", status.HTTP_201_CREATED)


@router.put("/items/{item_id}")
async def update_cart_item(
    item_id: int,
    body: schemas.CartItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    line = await cart.update_item(db, current_user.id, item_id, body.quantity)
    return success_response(schemas.CartItemOut.model_validate(line), "Cart item updated")


@router.delete("/items/{item_id}")
async def remove_from_cart(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    await cart.remove_item(db, current_user.id, item_id)
    return success_response(None, "Item removed from cart")


@router.delete("")
async def clear_cart(db: AsyncSession = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    await cart.clear_cart(db, current_user.id)
    return success_response(None, "Cart cleared")
