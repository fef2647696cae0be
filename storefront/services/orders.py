import logging
import secrets
import time
from typing import Optional

from kombu.exceptions import OperationalError
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import cache, models, schemas
from ..errors import bad_request, conflict, forbidden, not_found
from ..utils import clamp_page, pagination_meta
from ..validation import missing_fields
from ..worker import send_order_email, send_order_status_email
from . import pricing
from .cart import clear_cart

logger = logging.getLogger(__name__)

Order = models.Order
Product = models.Product
Status = models.OrderStatus

CUSTOMER_FIELDS = ["name", "email", "phone", "address", "city"]
PAYMENT_METHODS = {m.value for m in models.PaymentMethod}
ORDER_STATUSES = {s.value for s in Status}

# Forward-only lifecycle; cancellation is only reachable from pending
TRANSITIONS = {
    Status.PENDING.value: {Status.CONFIRMED.value, Status.CANCELLED.value},
    Status.CONFIRMED.value: {Status.SHIPPING.value},
    Status.SHIPPING.value: {Status.DELIVERED.value},
    Status.DELIVERED.value: set(),
    Status.CANCELLED.value: set(),
}


def generate_order_code() -> str:
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(2).upper()}"


def _dispatch(task, *args):
    try:
        task.delay(*args)
    except OperationalError as e:
        logger.warning("Could not queue %s: %s", task.name, e)


async def load_order(db: AsyncSession, order_id: int) -> models.Order:
    result = await db.execute(
        select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise not_found("Order not found", "ORDER_NOT_FOUND")
    return order


def _check_access(order: models.Order, user: models.User, allow_admin: bool = True):
    if order.user_id == user.id:
        return
    if allow_admin and user.role == models.Role.ADMIN.value:
        return
    raise forbidden()


async def create_order(db: AsyncSession, user: models.User, body: schemas.OrderCreate) -> models.Order:
    info = body.customer_info.model_dump() if body.customer_info else {}
    missing = missing_fields(info, CUSTOMER_FIELDS)
    if missing:
        raise bad_request(f"Missing customer info: {', '.join(missing)}", "MISSING_FIELDS")
    if not body.items:
        raise bad_request("Order must have at least one item", "EMPTY_ORDER")
    if body.payment_method not in PAYMENT_METHODS:
        raise bad_request("Invalid payment method", "INVALID_PAYMENT_METHOD")

    # Repeated lines for one product are merged so stock is checked once per product
    quantities = {}
    for item in body.items:
        if item.quantity < 1:
            raise bad_request("Quantity must be at least 1", "INVALID_QUANTITY")
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

    try:
        lines = []
        for product_id, quantity in quantities.items():
            product = await db.get(Product, product_id)
            if product is None:
                raise not_found(f"Product {product_id} not found", "PRODUCT_NOT_FOUND")
            if product.stock < quantity:
                raise bad_request(f"Insufficient stock for {product.name}", "INSUFFICIENT_STOCK")
            lines.append((product, quantity))

        subtotal = sum(product.price * quantity for product, quantity in lines)
        order = Order(
            order_code=generate_order_code(),
            user_id=user.id,
            status=Status.PENDING.value,
            payment_method=body.payment_method,
            payment_status=models.PaymentStatus.PENDING.value,
            customer_name=info["name"],
            customer_email=info["email"],
            customer_phone=info["phone"],
            address=info["address"],
            city=info["city"],
            district=info.get("district"),
            ward=info.get("ward"),
            note=body.note,
            **pricing.totals(subtotal),
        )
        order.items = [
            models.OrderItem(
                product_id=product.id,
                name=product.name,
                price=product.price,
                quantity=quantity,
                image=product.primary_image,
                subtotal=product.price * quantity,
            )
            for product, quantity in lines
        ]
        order.timeline = [models.OrderTimeline(status=Status.PENDING.value, description="Order created")]
        db.add(order)
        await db.flush()

        # Optimistic Locking
        for product, quantity in lines:
            stmt = (
                update(Product)
                .where(Product.id == product.id)
                .where(Product.version == product.version)
                .where(Product.stock >= quantity)
                .values(stock=Product.stock - quantity, version=Product.version + 1)
                .execution_options(synchronize_session=False)
            )
            update_result = await db.execute(stmt)
            if update_result.rowcount == 0:
                raise conflict(f"Stock changed for {product.name}. Please retry.", "STOCK_CHANGED")

        await clear_cart(db, user.id, commit=False)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Order %s created for user %s (total %s)", order.order_code, user.id, order.total)
    cache.invalidate_products()
    _dispatch(send_order_email, order.customer_email, order.order_code, order.total)
    return await load_order(db, order.id)


async def list_orders(db: AsyncSession, user_id: Optional[int], status: Optional[str], page: int, limit: int, default_limit: int = 10) -> dict:
    page, limit, offset = clamp_page(page, limit, default_limit=default_limit)
    query = select(Order)
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    if status:
        query = query.where(Order.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit))
    return {
        "orders": [schemas.OrderOut.model_validate(o) for o in result.scalars().all()],
        "pagination": pagination_meta(page, limit, total),
    }


async def get_order(db: AsyncSession, user: models.User, order_id: int) -> models.Order:
    order = await load_order(db, order_id)
    _check_access(order, user)
    return order


async def track_order(db: AsyncSession, user: models.User, order_code: str) -> models.Order:
    result = await db.execute(select(Order).where(Order.order_code == order_code))
    order = result.scalar_one_or_none()
    if order is None:
        raise not_found("Order not found", "ORDER_NOT_FOUND")
    _check_access(order, user)
    return order


async def _restock(db: AsyncSession, order: models.Order):
    for item in order.items:
        await db.execute(
            update(Product)
            .where(Product.id == item.product_id)
            .values(stock=Product.stock + item.quantity, version=Product.version + 1)
            .execution_options(synchronize_session=False)
        )


async def _apply_status(db: AsyncSession, order: models.Order, status: str, description: str):
    order.status = status
    order.timeline.append(models.OrderTimeline(status=status, description=description))
    if status == Status.DELIVERED.value and order.payment_method == models.PaymentMethod.COD.value:
        order.payment_status = models.PaymentStatus.PAID.value
    if status == Status.CANCELLED.value:
        await _restock(db, order)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    if status == Status.CANCELLED.value:
        cache.invalidate_products()
    logger.info("Order %s moved to %s", order.order_code, status)
    _dispatch(send_order_status_email, order.customer_email, order.order_code, status)


async def update_order_status(db: AsyncSession, order_id: int, status: Optional[str], description: Optional[str] = None) -> models.Order:
    if not status or status not in ORDER_STATUSES:
        raise bad_request("Invalid status", "INVALID_STATUS")
    order = await load_order(db, order_id)
    if status not in TRANSITIONS[order.status]:
        raise bad_request(
            f"Cannot change order status from {order.status} to {status}", "INVALID_STATUS_TRANSITION"
        )
    await _apply_status(db, order, status, description or f"Order status updated to {status}")
    return await load_order(db, order_id)


async def cancel_order(db: AsyncSession, user: models.User, order_id: int) -> models.Order:
    order = await load_order(db, order_id)
    _check_access(order, user, allow_admin=False)
    if order.status != Status.PENDING.value:
        raise bad_request("Can only cancel pending orders", "CANNOT_CANCEL_ORDER")
    await _apply_status(db, order, Status.CANCELLED.value, "Order has been cancelled")
    return await load_order(db, order_id)
