"""
Socket.IO channel
Clients join rooms by vendor phone, supplier id or area to receive live
updates. Room membership per connection is tracked in a SessionRegistry.
"""
import logging
import threading
from flask import request
from flask_socketio import SocketIO, join_room, leave_room

from .utils.geo import location_room

logger = logging.getLogger(__name__)

socketio = SocketIO()

SUPPLIERS_ROOM = "suppliers"


def vendor_room(phone):
    return f"vendor_{phone}"


def supplier_room(supplier_id):
    return f"supplier_{supplier_id}"


class SessionRegistry:
    """
    Rooms joined by each live connection, keyed by Socket.IO sid.
    Lives for the process lifetime; clients re-join after reconnecting.
    """

    def __init__(self):
        self._rooms = {}
        self._lock = threading.Lock()

    def join(self, sid, room):
        with self._lock:
            self._rooms.setdefault(sid, set()).add(room)

    def leave(self, sid, room):
        with self._lock:
            rooms = self._rooms.get(sid)
            if rooms:
                rooms.discard(room)

    def drop(self, sid):
        with self._lock:
            return self._rooms.pop(sid, set())

    def rooms_for(self, sid):
        with self._lock:
            return set(self._rooms.get(sid, ()))

    def members(self, room):
        with self._lock:
            return sorted(sid for sid, rooms in self._rooms.items() if room in rooms)

    def __len__(self):
        with self._lock:
            return len(self._rooms)


registry = SessionRegistry()


def _join(room):
    join_room(room)
    registry.join(request.sid, room)
    logger.info("Socket %s joined %s", request.sid, room)
    return {"ok": True, "room": room}


def _leave(room):
    leave_room(room)
    registry.leave(request.sid, room)
    return {"ok": True, "room": room}


def _require(data, key):
    value = (data or {}).get(key)
    if value in (None, ""):
        return None
    return str(value).strip()


@socketio.on("connect")
def on_connect(auth=None):
    registry.drop(request.sid)
    logger.info("Socket connected: %s", request.sid)


@socketio.on("disconnect")
def on_disconnect(reason=None):
    rooms = registry.drop(request.sid)
    logger.info("Socket disconnected: %s (left %d rooms)", request.sid, len(rooms))


@socketio.on("joinVendor")
def on_join_vendor(data):
    phone = _require(data, "vendorPhone")
    if not phone:
        return {"ok": False, "error": "vendorPhone is required"}
    return _join(vendor_room(phone))


@socketio.on("leaveVendor")
def on_leave_vendor(data):
    phone = _require(data, "vendorPhone")
    if not phone:
        return {"ok": False, "error": "vendorPhone is required"}
    return _leave(vendor_room(phone))


@socketio.on("joinSupplier")
def on_join_supplier(data):
    supplier_id = _require(data, "supplierId")
    if not supplier_id:
        return {"ok": False, "error": "supplierId is required"}
    _join(SUPPLIERS_ROOM)
    return _join(supplier_room(supplier_id))


@socketio.on("leaveSupplier")
def on_leave_supplier(data):
    supplier_id = _require(data, "supplierId")
    if not supplier_id:
        return {"ok": False, "error": "supplierId is required"}
    _leave(SUPPLIERS_ROOM)
    return _leave(supplier_room(supplier_id))


@socketio.on("joinLocation")
def on_join_location(data):
    location = _require(data, "location")
    if not location:
        return {"ok": False, "error": "location is required"}
    return _join(location_room(location))


@socketio.on("leaveLocation")
def on_leave_location(data):
    location = _require(data, "location")
    if not location:
        return {"ok": False, "error": "location is required"}
    return _leave(location_room(location))
