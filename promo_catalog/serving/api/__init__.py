"""
HTTP API Module
"""
from .errors import register_exception_handlers
from .middleware import RequestLoggingMiddleware

__all__ = ["register_exception_handlers", "RequestLoggingMiddleware"]
