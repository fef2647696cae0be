from ..config import settings


def shipping_fee(subtotal: float) -> float:
    """Flat fee, waived once the subtotal is strictly above the free-shipping threshold."""
    return 0 if subtotal > settings.FREE_SHIPPING_THRESHOLD else settings.SHIPPING_FEE


def totals(subtotal: float) -> dict:
    fee = shipping_fee(subtotal)
    return {"subtotal": subtotal, "shipping_fee": fee, "total": subtotal + fee}
