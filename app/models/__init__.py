"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from app.models.coupon import Coupon, coupon_segments
from app.models.idempotency_key import IdempotencyKey
from app.models.inventory import Inventory
from app.models.notification import Notification
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.payment import Payment
from app.models.product import Product, ProductVariant
from app.models.return_record import Return, ReturnItem
from app.models.shipment import Shipment
from app.models.stock_movement import StockMovement
from app.models.user import Segment, User

__all__ = [
    "Coupon",
    "coupon_segments",
    "IdempotencyKey",
    "Inventory",
    "Notification",
    "Order",
    "OrderItem",
    "Payment",
    "Product",
    "ProductVariant",
    "Return",
    "ReturnItem",
    "Segment",
    "Shipment",
    "StockMovement",
    "User",
]
