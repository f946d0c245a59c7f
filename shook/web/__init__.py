"""
Web API module.
"""
from .api import create_api_router

__all__ = [
    "create_api_router",
]
