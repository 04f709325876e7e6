"""
Request rate limiting for the REST API, keyed by client address
"""
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)


def init_limiter(app):
    limiter.init_app(app)
