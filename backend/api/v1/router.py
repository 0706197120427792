"""API v1 aggregated router.

All v1 endpoints are registered here and mounted under /api/v1 in main.py.
This makes it trivial to add /api/v2 later without touching existing routes.
"""

from fastapi import APIRouter

from api.routes import (
    announcements,
    auth,
    catalog,
    configurations,
    health,
    logs,
    organizations,
    permissions,
    prices,
    roles,
    users,
)

api_v1_router = APIRouter()

# Health (no auth required)
api_v1_router.include_router(
    health.router,
    tags=["Health"],
)

# Authentication
api_v1_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

# Permission catalog
api_v1_router.include_router(
    permissions.router,
    prefix="/permissions",
    tags=["Permissions"],
)

# Roles
api_v1_router.include_router(
    roles.router,
    prefix="/roles",
    tags=["Roles"],
)

# Users
api_v1_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"],
)

# Organizations
api_v1_router.include_router(
    organizations.router,
    prefix="/organizations",
    tags=["Organizations"],
)

# Service catalog
api_v1_router.include_router(
    catalog.service_types_router,
    prefix="/service-types",
    tags=["Service Types"],
)
api_v1_router.include_router(
    catalog.services_router,
    prefix="/services",
    tags=["Services"],
)

# Prices
api_v1_router.include_router(
    prices.router,
    prefix="/prices",
    tags=["Prices"],
)

# Operation logs
api_v1_router.include_router(
    logs.router,
    prefix="/logs",
    tags=["Logs"],
)

# Announcements
api_v1_router.include_router(
    announcements.router,
    prefix="/announcements",
    tags=["Announcements"],
)

# Configuration
api_v1_router.include_router(
    configurations.router,
    prefix="/configurations",
    tags=["Configurations"],
)
