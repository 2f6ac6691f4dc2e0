from fastapi import APIRouter

from orderhook.api.routes import billing, health, webhooks

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(webhooks.router, tags=["webhooks"])
api_router.include_router(billing.router, tags=["billing"])
