from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import models, schemas
from ..utils import clamp_page, pagination_meta
from .catalog import paginate, product_summary, search_clause

Order = models.Order
OrderItem = models.OrderItem
DELIVERED = models.OrderStatus.DELIVERED.value


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar_one()


async def get_stats(db: AsyncSession) -> dict:
    revenue = await db.execute(select(func.coalesce(func.sum(Order.total), 0)).where(Order.status == DELIVERED))
    return {
        "total_users": await _count(db, models.User),
        "total_products": await _count(db, models.Product),
        "total_orders": await _count(db, Order),
        "total_revenue": revenue.scalar_one(),
    }


async def top_selling_products(db: AsyncSession, limit: int = 5) -> list:
    """Quantity and revenue per product over every order line, best sellers first."""
    quantity_sold = func.sum(OrderItem.quantity).label("quantity_sold")
    result = await db.execute(
        select(
            OrderItem.product_id,
            func.max(OrderItem.name).label("name"),
            quantity_sold,
            func.sum(OrderItem.price * OrderItem.quantity).label("revenue"),
        )
        .group_by(OrderItem.product_id)
        .order_by(quantity_sold.desc(), OrderItem.product_id)
        .limit(max(1, limit))
    )
    return [
        {"product_id": row.product_id, "name": row.name, "quantity_sold": row.quantity_sold, "revenue": row.revenue}
        for row in result.all()
    ]


async def recent_orders(db: AsyncSession, limit: int = 10) -> list:
    result = await db.execute(select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit))
    return [schemas.OrderOut.model_validate(o) for o in result.scalars().all()]


async def recent_users(db: AsyncSession, limit: int = 5) -> list:
    result = await db.execute(
        select(models.User).order_by(models.User.created_at.desc(), models.User.id.desc()).limit(limit)
    )
    return [schemas.UserOut.model_validate(u) for u in result.scalars().all()]


async def get_dashboard(db: AsyncSession) -> dict:
    return {
        "statistics": await get_stats(db),
        "recent_orders": await recent_orders(db),
        "recent_users": await recent_users(db),
        "top_products": await top_selling_products(db),
    }


async def list_products(db: AsyncSession, category: Optional[int], search: Optional[str], page: int, limit: int) -> dict:
    page, limit, _ = clamp_page(page, limit)
    query = select(models.Product)
    if category is not None:
        query = query.where(models.Product.category_id == category)
    if search:
        query = query.where(search_clause(search))
    products, total = await paginate(
        db, query, (models.Product.created_at.desc(), models.Product.id.desc()), page, limit
    )
    return {
        "products": [product_summary(p) for p in products],
        "pagination": pagination_meta(page, limit, total),
    }


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def sales_analytics(db: AsyncSession, start_date: Optional[datetime], end_date: Optional[datetime]) -> dict:
    query = select(Order.total).where(Order.status == DELIVERED)
    if start_date:
        query = query.where(Order.created_at >= _aware(start_date))
    if end_date:
        query = query.where(Order.created_at <= _aware(end_date))
    totals = (await db.execute(query)).scalars().all()

    total_sales = sum(totals)
    total_orders = len(totals)
    average = total_sales / total_orders if total_orders else 0
    return {
        "total_sales": total_sales,
        "total_orders": total_orders,
        "average_order_value": round(average, 2),
    }
