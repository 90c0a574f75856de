"""Route modules for the roompanel server."""

from .api_routes import register_api_routes
from .display_routes import register_display_routes

__all__ = [
    "register_api_routes",
    "register_display_routes",
]
