"""
Database models
"""
from .vendor import Vendor
from .supplier import Supplier
from .order import Order, ORDER_STATUSES, ORDER_SOURCES, ORDER_PRIORITIES
from .order_item import OrderItem
from .service_area import ServiceArea
from .pool import Pool, POOL_STATUSES, OPEN_POOL_STATUSES

__all__ = [
    "Vendor",
    "Supplier",
    "Order",
    "OrderItem",
    "ServiceArea",
    "Pool",
    "ORDER_STATUSES",
    "ORDER_SOURCES",
    "ORDER_PRIORITIES",
    "POOL_STATUSES",
    "OPEN_POOL_STATUSES",
]
