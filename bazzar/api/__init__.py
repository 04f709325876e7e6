"""
REST APIs
"""
from .auth import bp as auth_bp
from .orders import bp as orders_bp
from .pools import bp as pools_bp
from .suppliers import bp as suppliers_bp
from .voice import bp as voice_bp

__all__ = [
    "auth_bp",
    "orders_bp",
    "pools_bp",
    "suppliers_bp",
    "voice_bp",
]
