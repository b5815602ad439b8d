"""
TIPSTREAM - API Routes Package

- Predictions (matches, pooled picks, analysis)
- Administration (source URLs)
- Health
"""

from fastapi import APIRouter

from tipstream.api.routes import admin
from tipstream.api.routes import health
from tipstream.api.routes import predictions

# Everything under /api; health is mounted at the root by the app
api_router = APIRouter()
api_router.include_router(predictions.router)
api_router.include_router(admin.router, prefix="/admin")

predictions_router = predictions.router
admin_router = admin.router
health_router = health.router

__all__ = [
    "api_router",
    "predictions_router",
    "admin_router",
    "health_router",
]
