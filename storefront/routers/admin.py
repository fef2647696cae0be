from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .. import schemas
from ..auth import get_admin_user
from ..database import get_db
from ..services import accounts, admin, catalog, orders
from ..utils import success_response

# Every route here requires an admin token
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(get_admin_user)])


@router.get("/stats")
async def stats(db: AsyncSession = Depends(get_db)):
    return success_response(await admin.get_stats(db), "Statistics retrieved")


@router.get("/dashboard")
async def dashboard(db: AsyncSession = Depends(get_db)):
    return success_response(await admin.get_dashboard(db), "Dashboard data retrieved")


# --- Orders ---
@router.get("/orders")
async def list_orders(
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
):
    data = await orders.list_orders(db, None, status, page, limit, default_limit=20)
    return success_response(data, "Orders retrieved")


@router.put("/orders/{order_id}/status")
async def update_order_status(order_id: int, body: schemas.OrderStatusUpdate, db: AsyncSession = Depends(get_db)):
    order = await orders.update_order_status(db, order_id, body.status, body.description)
    return success_response(schemas.OrderOut.model_validate(order), "Order status updated")


# --- Products ---
@router.get("/products")
async def list_products(
    category: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
):
    return success_response(await admin.list_products(db, category, search, page, limit), "Products retrieved")


@router.put("/products/{product_id}")
async def update_product(product_id: int, body: schemas.ProductUpdate, db: AsyncSession = Depends(get_db)):
    product = await catalog.update_product(db, product_id, body)
    return success_response(schemas.ProductOut.model_validate(product), "Product updated successfully")


@router.delete("/products/{product_id}")
async def delete_product(product_id: int, db: AsyncSession = Depends(get_db)):
    await catalog.delete_product(db, product_id)
    return success_response(None, "Product deleted successfully")


# --- Users ---
@router.get("/users")
async def list_users(
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
):
    return success_response(await accounts.list_users(db, role, search, page, limit), "Users retrieved")


@router.put("/users/{user_id}")
async def update_user(user_id: int, body: schemas.AdminUserUpdate, db: AsyncSession = Depends(get_db)):
    return success_response(await accounts.update_user(db, user_id, body), "User updated successfully")


# --- Analytics ---
@router.get("/analytics/sales")
async def sales_analytics(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
):
    return success_response(await admin.sales_analytics(db, start_date, end_date), "Sales analytics retrieved")


@router.get("/analytics/top-products")
async def top_products(limit: int = 10, db: AsyncSession = Depends(get_db)):
    data = await admin.top_selling_products(db, limit)
    return success_response({"products": data}, "Top products retrieved")
