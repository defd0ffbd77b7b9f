"""
API Module
"""
from .main import create_api_app
from .middleware import RequestLoggingMiddleware, ResponseHeadersMiddleware

__all__ = [
    "create_api_app",
    "RequestLoggingMiddleware",
    "ResponseHeadersMiddleware",
]
