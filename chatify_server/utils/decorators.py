"""Route decorators for common patterns like error handling.

This module provides reusable decorators to reduce boilerplate in route handlers.
"""
import functools
import logging
from typing import Callable

from flask import request
from pymongo.errors import PyMongoError

from chatify_server.exception import ChatError
from chatify_server.utils.helpers import respond_error

logger = logging.getLogger(__name__)


def handle_errors(func: Callable) -> Callable:
    """Decorator to handle common exceptions in route handlers.

    Catches:
    - ChatError subclasses -> their own status (400 / 404 / 409)
    - PyMongoError -> 503 (transient, caller may retry)
    - Other exceptions -> 500

    Usage:
        @bp.route('/example')
        @handle_errors
        def example_route():
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ChatError as e:
            logger.warning("%s in %s: %s", e.code, func.__name__, e.message)
            return respond_error(e.message, status=e.status, code=e.code)
        except PyMongoError as e:
            logger.error("Storage error in %s: %s", func.__name__, e)
            return respond_error('Storage temporarily unavailable', status=503, code='STORAGE_UNAVAILABLE')
        except Exception:
            logger.exception("Unexpected error in %s", func.__name__)
            return respond_error('Server error', status=500)
    return wrapper


def validate_json(*required_fields: str) -> Callable:
    """Decorator to validate that required JSON fields are present.

    Usage:
        @bp.route('/create', methods=['POST'])
        @validate_json('name', 'members')
        def create_item():
            data = request.get_json()
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            data = request.get_json(silent=True)

            if not isinstance(data, dict):
                return respond_error('Request body must be JSON', status=400)

            missing = [f for f in required_fields if not data.get(f)]
            if missing:
                return respond_error(f"Missing required fields: {', '.join(missing)}", status=400)

            return func(*args, **kwargs)
        return wrapper
    return decorator
