"""API routers."""

from concierge.routers.voicemails import router as voicemails_router
from concierge.routers.webhooks import router as webhooks_router

__all__ = ["webhooks_router", "voicemails_router"]
