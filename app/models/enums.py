# app/models/enums.py
from __future__ import annotations

from enum import StrEnum


class OrderStatus(StrEnum):
    """
    Order lifecycle:

    - PENDING      created, waiting for payment (stock reserved)
    - PROCESSING   payment settled, stock committed
    - READY / SHIPPED / IN_TRANSIT / DELIVERED / FAILED   fulfillment (admin)
    - RETURNED     a return was completed
    - CANCELLED    payment expired/cancelled/denied, or manual cancel
    """

    READY = "ready"
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    SETTLEMENT = "settlement"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ShipmentStatus(StrEnum):
    READY = "ready"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ReturnStatus(StrEnum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"


# a return in one of these no longer blocks a new request for the same order
CLOSED_RETURN_STATUSES = (ReturnStatus.REJECTED, ReturnStatus.COMPLETED)


class MovementAction(StrEnum):
    """
    Stock movement log actions (append-only):

    - RESERVE          reserved += q            (order created)
    - STOCK_COMMITTED  stock -= q, reserved -= q (payment settled)
    - STOCK_UNRESERVE  reserved -= q, floor 0   (payment cancelled/expired)
    - STOCK_ADD        stock += q               (admin add / return restore)
    - STOCK_REMOVE     stock -= q, floor 0      (admin)
    - STOCK_SET        stock = q                (admin)
    """

    RESERVE = "RESERVE"
    STOCK_COMMITTED = "STOCK_COMMITTED"
    STOCK_UNRESERVE = "STOCK_UNRESERVE"
    STOCK_ADD = "STOCK_ADD"
    STOCK_REMOVE = "STOCK_REMOVE"
    STOCK_SET = "STOCK_SET"


class AdjustKind(StrEnum):
    ADD = "add"
    REMOVE = "remove"
    SET = "set"


class StockLevelStatus(StrEnum):
    OUT = "out"
    LOW = "low"
    NORMAL = "normal"


class DiscountType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class UserRole(StrEnum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class NotificationType(StrEnum):
    ORDER_CREATED = "ORDER_CREATED"
    NEW_ORDER = "NEW_ORDER"
    PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_SHIPPED = "ORDER_SHIPPED"
    ORDER_DELIVERED = "ORDER_DELIVERED"
    RETURN_REQUEST = "RETURN_REQUEST"
    RETURN_APPROVED = "RETURN_APPROVED"
    RETURN_REJECTED = "RETURN_REJECTED"
    RETURN_COMPLETED = "RETURN_COMPLETED"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
