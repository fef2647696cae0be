from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models, schemas
from ..auth import get_admin_user, get_current_user
from ..database import get_db
from ..services import orders
from ..utils import success_response

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("")
async def create_order(
    body: schemas.OrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    order = await orders.create_order(db, current_user, body)
    return success_response(schemas.OrderOut.model_validate(order), "Order created successfully", status.HTTP_201_CREATED)


@router.get("")
async def list_my_orders(
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    data = await orders.list_orders(db, current_user.id, status, page, limit)
    return success_response(data, "Orders retrieved")


# Must be declared before /{order_id}
@router.get("/track/{order_code}")
async def track_order(
    order_code: str,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    order = await orders.track_order(db, current_user, order_code)
    return success_response(schemas.OrderOut.model_validate(order), "Order retrieved")


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    order = await orders.get_order(db, current_user, order_id)
    return success_response(schemas.OrderOut.model_validate(order), "Order retrieved")


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: int,
    body: schemas.OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.User = Depends(get_admin_user),
):
    order = await orders.update_order_status(db, order_id, body.status, body.description)
    return success_response(schemas.OrderOut.model_validate(order), "Order status updated")


@router.delete("/{order_id}")
async def cancel_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    order = await orders.cancel_order(db, current_user, order_id)
    return success_response(schemas.OrderOut.model_validate(order), "Order cancelled successfully")
