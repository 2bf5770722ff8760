"""
API routes module.
"""

from buildqueue.api.routes.health import router as health_router
from buildqueue.api.routes.queue import router as queue_router

__all__ = ["queue_router", "health_router"]
