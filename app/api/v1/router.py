from fastapi import APIRouter

from app.api.v1.endpoints.health import router as health_router
from app.api.v1.endpoints.fields import router as fields_router
from app.api.v1.endpoints.taxonomies import router as taxonomies_router
from app.api.v1.endpoints.listings import router as listings_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(fields_router, tags=["fields"])
router.include_router(taxonomies_router, tags=["taxonomies"])
router.include_router(listings_router, tags=["listings"])
