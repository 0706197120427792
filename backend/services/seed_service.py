"""Idempotent bootstrap data: permissions, default roles, root org, admin account."""

import logging
import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from core.constants import DefaultRole
from core.permissions import PermissionCode, list_permissions
from db.models.organization import Organization
from db.models.permission import Permission
from db.models.role import Role
from db.models.user import User
from services.user_service import UserService

logger = logging.getLogger(__name__)

_ALL_CODES = tuple(p.code for p in list_permissions())

DEFAULT_ROLES: dict[DefaultRole, dict] = {
    DefaultRole.ADMIN: {
        "name": "Super Administrator",
        "description": "Full access to every function",
        "codes": _ALL_CODES,
    },
    DefaultRole.MANAGER: {
        "name": "Administrator",
        "description": "Day-to-day administration without system configuration",
        "codes": tuple(c for c in _ALL_CODES if c != PermissionCode.CONFIG_EDIT.value),
    },
    DefaultRole.INTERNAL: {
        "name": "Internal User",
        "description": "Staff access to prices and reports",
        "codes": (
            PermissionCode.USER_VIEW.value,
            PermissionCode.ORG_VIEW.value,
            PermissionCode.PRICE_VIEW.value,
            PermissionCode.PRICE_EXPORT.value,
            PermissionCode.DATA_ANALYSIS.value,
        ),
    },
    DefaultRole.EXTERNAL: {
        "name": "External User",
        "description": "Read-only access to prices",
        "codes": (PermissionCode.PRICE_VIEW.value,),
    },
}


async def seed_permissions(db: AsyncSession) -> dict[str, Permission]:
    """Upsert one row per registry entry; returns rows keyed by code."""
    result = await db.execute(select(Permission))
    existing = {p.code: p for p in result.scalars().all()}
    for definition in list_permissions():
        row = existing.get(definition.code)
        if row is None:
            row = Permission(code=definition.code)
            db.add(row)
            existing[definition.code] = row
        row.name = definition.name
        row.description = definition.description
        row.module = definition.module
        row.is_active = True
        row.is_deleted = False
        row.deleted_at = None
    await db.flush()
    return existing


async def seed_roles(db: AsyncSession, permissions: dict[str, Permission]) -> dict[str, Role]:
    """Create missing default roles. Existing roles keep their edited permission sets."""
    roles: dict[str, Role] = {}
    for slug, definition in DEFAULT_ROLES.items():
        result = await db.execute(select(Role).where(Role.slug == slug.value))
        role = result.scalar_one_or_none()
        if role is None:
            role = Role(
                name=definition["name"],
                slug=slug.value,
                description=definition["description"],
                is_system_role=True,
            )
            role.permissions = [permissions[code] for code in definition["codes"]]
            db.add(role)
            logger.info("Seeded role %s with %d permissions", slug.value, len(definition["codes"]))
        roles[slug.value] = role
    await db.flush()
    return roles


async def seed_root_organization(db: AsyncSession) -> Organization:
    settings = get_settings()
    result = await db.execute(
        select(Organization).where(
            Organization.name == settings.ROOT_ORGANIZATION_NAME,
            Organization.parent_id == None,
            Organization.is_deleted == False,
        )
    )
    org = result.scalar_one_or_none()
    if org is None:
        org = Organization(
            name=settings.ROOT_ORGANIZATION_NAME,
            level=1,
            description="Root of the organization hierarchy",
        )
        db.add(org)
        await db.flush()
        logger.info("Seeded root organization %s", org.name)
    return org


async def seed_admin_account(db: AsyncSession, admin_role: Role, root: Organization) -> Optional[User]:
    """Create the bootstrap administrator if the username is free.

    Without DEFAULT_ADMIN_PASSWORD a random password is generated and logged
    once; in production the account is not created at all.
    """
    settings = get_settings()
    service = UserService(db)
    if await service.get_by_username(settings.DEFAULT_ADMIN_USERNAME, include_deleted=True):
        return None

    password = settings.DEFAULT_ADMIN_PASSWORD
    if not password:
        if settings.is_production:
            logger.warning("DEFAULT_ADMIN_PASSWORD not set; skipping admin account creation")
            return None
        password = secrets.token_urlsafe(12)
        logger.warning(
            "Generated password for %s: %s (set DEFAULT_ADMIN_PASSWORD to choose one)",
            settings.DEFAULT_ADMIN_USERNAME,
            password,
        )

    user = await service.create_user(
        username=settings.DEFAULT_ADMIN_USERNAME,
        password=password,
        real_name="System Administrator",
        organization_id=root.id,
        role_ids=[admin_role.id],
    )
    logger.info("Seeded admin account %s", user.username)
    return user


async def seed_defaults(db: AsyncSession) -> dict:
    """Run every seed step in order. Safe to call on every startup."""
    permissions = await seed_permissions(db)
    roles = await seed_roles(db, permissions)
    root = await seed_root_organization(db)
    admin = await seed_admin_account(db, roles[DefaultRole.ADMIN.value], root)
    return {
        "permissions": len(permissions),
        "roles": sorted(roles),
        "root_organization_id": root.id,
        "admin_created": admin is not None,
    }
