"""
Service: Live notifications
Best-effort fan-out of order/pool changes to Socket.IO rooms. Runs after the
database commit; a failed emit is logged and dropped, never retried.
"""
import logging

from ..sockets import socketio, vendor_room, supplier_room, SUPPLIERS_ROOM
from ..utils.geo import location_room

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    "pooled": "Your order has been pooled for efficient delivery!",
    "ready": "Your pool is ready and waiting for a supplier.",
    "dispatched": "Your order has been dispatched!",
    "delivered": "Your order has been delivered!",
    "cancelled": "Your pool was cancelled, the order is back to pending.",
}


def _emit(event, payload, room):
    try:
        socketio.emit(event, payload, to=room)
    except Exception:
        logger.warning("Dropped %s notification for %s", event, room, exc_info=True)


def _area_rooms(obj):
    rooms = []
    for value in (obj.area, obj.city):
        if value:
            room = location_room(value)
            if room not in rooms:
                rooms.append(room)
    return rooms


def notify_order_update(order_data):
    """orderUpdate to the vendor and the order's area"""
    _emit("orderUpdate", order_data, vendor_room(order_data["vendor_phone"]))
    location = order_data.get("location") or {}
    for value in (location.get("area"), location.get("city")):
        if value:
            _emit("orderUpdate", order_data, location_room(value))


def notify_order_pooled(order, pool):
    _emit("orderPooled", {
        "orderId": order.id,
        "poolId": pool.id,
        "message": STATUS_MESSAGES["pooled"],
    }, vendor_room(order.vendor_phone))


def notify_pool_update(pool):
    """poolUpdate to suppliers, the assigned supplier and the pool's area"""
    payload = pool.to_dict()
    rooms = [SUPPLIERS_ROOM] + _area_rooms(pool)
    if pool.supplier_id:
        rooms.append(supplier_room(pool.supplier_id))
    for room in rooms:
        _emit("poolUpdate", payload, room)


def notify_pool_ready(pool):
    payload = {
        "poolId": pool.id,
        "pool": pool.to_dict(),
        "message": f"Pool #{pool.id} is ready for dispatch!",
    }
    for room in [SUPPLIERS_ROOM] + _area_rooms(pool):
        _emit("poolReady", payload, room)


def notify_vendors(pool, orders, status):
    """vendorNotification to every vendor whose order the pool change touched"""
    for order in orders:
        _emit("vendorNotification", {
            "type": status,
            "message": STATUS_MESSAGES.get(status, f"Your order status updated to: {status}"),
            "poolId": pool.id,
            "orderId": order.id,
        }, vendor_room(order.vendor_phone))


def publish(result):
    """Emits everything a PoolingResult implies"""
    pool, order = result.pool, result.order

    if order is not None:
        notify_order_update(order.to_dict())
    if result.attached:
        notify_order_pooled(order, pool)
    if pool is None:
        return

    notify_pool_update(pool)
    if result.became_ready:
        notify_pool_ready(pool)
        notify_vendors(pool, pool.orders, "ready")
    if result.orders and result.status_changed:
        notify_vendors(pool, result.orders, pool.status)
        if pool.status in ("dispatched", "delivered", "cancelled"):
            for affected in result.orders:
                notify_order_update(affected.to_dict())
