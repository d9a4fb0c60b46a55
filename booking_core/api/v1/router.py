"""
API v1 router setup
Organized into: api_key (web UI and integrations), booking tools (voice agent) and cron routes
"""
from fastapi import APIRouter

from booking_core.api.v1 import booking_tools, bookings, cron

api_v1_router = APIRouter()

# ============================================================================
# API KEY ROUTES (API key authentication required)
# ============================================================================
api_v1_router.include_router(bookings.router, tags=["API Key - Bookings"])

# ============================================================================
# VOICE TOOL ROUTES (tool secret + business context)
# ============================================================================
api_v1_router.include_router(booking_tools.router, tags=["Voice Tools"])

# ============================================================================
# CRON ROUTES (CRON_SECRET bearer)
# ============================================================================
api_v1_router.include_router(cron.router, tags=["Cron"])


@api_v1_router.get("/", tags=["Info"])
def api_info():
    """API information: route groups and how each authenticates."""
    return {
        "version": "1.0",
        "authentication": {
            "api_key": "Authorization: Bearer <api key>",
            "booking_tools": "X-Tool-Secret plus X-Business-Context, X-Phone-Number or X-Assistant-ID",
            "cron": "Authorization: Bearer <CRON_SECRET>"
        }
    }
