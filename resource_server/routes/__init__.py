"""HTTP routes for the Resource Server."""

from .resources import router as resources_router

__all__ = ["resources_router"]
