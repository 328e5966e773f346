"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.auth_routes import router as auth_router
from app.api.routes.application_routes import router as application_router
from app.api.routes.admin_routes import router as admin_router
from app.api.routes.superadmin_routes import router as superadmin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(application_router)
api_router.include_router(admin_router)
api_router.include_router(superadmin_router)
