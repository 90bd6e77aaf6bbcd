"""API router aggregating all endpoint modules."""

from fastapi import APIRouter

from app.api.v1 import auth, profile, catalog, requests, agent, admin, notifications, webhooks

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(profile.router, prefix="/profile", tags=["Profile"])
api_router.include_router(catalog.router, prefix="/catalog", tags=["Catalog"])
api_router.include_router(requests.router, prefix="/requests", tags=["Requests"])
api_router.include_router(agent.router, prefix="/agent", tags=["Agent"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
