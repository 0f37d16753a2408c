"""API routes."""

from anyrss.routes.channels import router as channels_router
from anyrss.routes.health import router as health_router

__all__ = ["channels_router", "health_router"]
