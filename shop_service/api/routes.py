"""API router aggregating every route group under /api/v1"""
from fastapi import APIRouter
from shop_service.api import admin_routes, auth_routes, catalog_routes, favorite_routes, order_routes

router = APIRouter(prefix="/api/v1")

router.include_router(auth_routes.router)
router.include_router(catalog_routes.router)
router.include_router(order_routes.router)
router.include_router(favorite_routes.router)
router.include_router(admin_routes.super_admin_router)
router.include_router(admin_routes.seller_router)
