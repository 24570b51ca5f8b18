"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from opportunity_hub.api.routes.auth_routes import router as auth_router
from opportunity_hub.api.routes.profile_routes import router as profile_router
from opportunity_hub.api.routes.internship_routes import router as internship_router
from opportunity_hub.api.routes.opportunity_routes import router as opportunity_router
from opportunity_hub.api.routes.bookmark_routes import router as bookmark_router
from opportunity_hub.api.routes.tracker_routes import router as tracker_router
from opportunity_hub.api.routes.toolkit_routes import router as toolkit_router
from opportunity_hub.api.routes.ungatekeep_routes import router as ungatekeep_router
from opportunity_hub.api.routes.banner_routes import router as banner_router
from opportunity_hub.api.routes.task_routes import router as task_router
from opportunity_hub.api.routes.community_routes import router as community_router
from opportunity_hub.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(profile_router)
api_router.include_router(internship_router)
api_router.include_router(opportunity_router)
api_router.include_router(bookmark_router)
api_router.include_router(tracker_router)
api_router.include_router(toolkit_router)
api_router.include_router(ungatekeep_router)
api_router.include_router(banner_router)
api_router.include_router(task_router)
api_router.include_router(community_router)
api_router.include_router(admin_router)
