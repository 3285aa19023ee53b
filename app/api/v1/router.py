from fastapi import APIRouter

from app.api.v1.endpoints.health import router as health_router
from app.api.v1.endpoints.internal import router as internal_router
from app.api.v1.endpoints.me import router as me_router
from app.api.v1.endpoints.listings import router as listings_router
from app.api.v1.endpoints.requests import router as requests_router
from app.api.v1.endpoints.deliveries import router as deliveries_router
from app.api.v1.endpoints.admin import router as admin_router
from app.api.v1.endpoints.users import router as users_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(internal_router, tags=["internal"])
router.include_router(me_router, tags=["me"])
router.include_router(listings_router, tags=["listings"])
router.include_router(requests_router, tags=["requests"])
router.include_router(deliveries_router, tags=["deliveries"])
router.include_router(admin_router, tags=["admin"])
router.include_router(users_router, tags=["users"])
