"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from eventpass.api.routes import events, scan, templates, tickets

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(events.router)
api_router.include_router(tickets.router)
api_router.include_router(scan.router)
api_router.include_router(templates.router)
