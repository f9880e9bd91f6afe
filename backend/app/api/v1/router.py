from fastapi import APIRouter

from backend.app.api.v1.endpoints.health import router as health_router
from backend.app.api.v1.endpoints.auth import router as auth_router
from backend.app.api.v1.endpoints.categories import router as categories_router
from backend.app.api.v1.endpoints.products import router as products_router
from backend.app.api.v1.endpoints.warehouses import router as warehouses_router
from backend.app.api.v1.endpoints.inventories import router as inventories_router
from backend.app.api.v1.endpoints.stock_levels import router as stock_levels_router
from backend.app.api.v1.endpoints.stock_in import router as stock_in_router
from backend.app.api.v1.endpoints.stock_out import router as stock_out_router
from backend.app.api.v1.endpoints.stock_transfers import router as stock_transfers_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(categories_router, tags=["categories"])
router.include_router(products_router, tags=["products"])
router.include_router(warehouses_router, tags=["warehouses"])
router.include_router(inventories_router, tags=["inventories"])
router.include_router(stock_levels_router, tags=["stock_levels"])
router.include_router(stock_in_router, tags=["stock_in"])
router.include_router(stock_out_router, tags=["stock_out"])
router.include_router(stock_transfers_router, tags=["stock_transfers"])
