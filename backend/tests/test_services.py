"""Tests for the service layer against an in-memory database."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from core.constants import ConfigurationType, OperationAction, OperationModule
from core.exceptions import BadRequestError, ConflictError, NotFoundError, UnknownPermissionError
from core.permissions import ADMIN_MARKER, PermissionCode
from core.utils import utc_now
from db.models.organization import Organization
from db.models.permission import Permission
from db.models.role import Role
from services.access_service import load_principal
from services.announcement_service import AnnouncementService
from services.auth_service import AuthService
from services.configuration_service import ConfigurationService, current_configuration
from services.operation_log_service import OperationLogService
from services.organization_service import OrganizationService
from services.role_service import RoleService
from services.seed_service import seed_defaults, seed_permissions, seed_roles
from services.user_service import UserService
from conftest import TEST_PASSWORD


@pytest.mark.integration
class TestOrganizationService:

    async def test_create_root_and_child(self, db_session):
        svc = OrganizationService(db_session)
        root = await svc.create_organization("Group")
        child = await svc.create_organization("Depot", parent_id=root.id, description="East depot")
        assert root.level == 1 and root.parent_id is None
        assert child.level == 2 and child.parent_id == root.id
        assert child.is_active is True

    async def test_duplicate_name_conflicts(self, db_session, org_tree):
        with pytest.raises(ConflictError):
            await OrganizationService(db_session).create_organization("North Region")

    async def test_missing_parent_is_rejected(self, db_session):
        with pytest.raises(BadRequestError, match="Parent"):
            await OrganizationService(db_session).create_organization("Orphan", parent_id="missing")

    async def test_load_hierarchy(self, db_session, org_tree):
        hierarchy = await OrganizationService(db_session).load_hierarchy()
        assert hierarchy.is_acyclic
        assert hierarchy.roots == (org_tree["head"].id,)
        assert hierarchy.descendants_of(org_tree["region"].id) == (org_tree["branch"].id,)

    async def test_move_under_own_descendant_is_refused(self, db_session, org_tree):
        svc = OrganizationService(db_session)
        region = await svc.get_or_404(org_tree["region"].id)
        with pytest.raises(BadRequestError, match="descendant"):
            await svc.update_organization(region, {}, parent_id=org_tree["branch"].id)
        with pytest.raises(BadRequestError, match="own parent"):
            await svc.update_organization(region, {}, parent_id=region.id)

        hierarchy = await svc.load_hierarchy()
        assert hierarchy.is_acyclic
        assert hierarchy.parent_of(org_tree["region"].id) == org_tree["head"].id

    async def test_move_relevels_subtree(self, db_session, org_tree):
        svc = OrganizationService(db_session)
        region = await svc.get_or_404(org_tree["region"].id)
        await svc.update_organization(region, {}, parent_id=org_tree["sister"].id)

        branch = await svc.get_or_404(org_tree["branch"].id)
        assert region.level == 3
        assert branch.level == 4
        assert (await svc.load_hierarchy()).level_mismatches() == ()

    async def test_move_to_root(self, db_session, org_tree):
        svc = OrganizationService(db_session)
        region = await svc.get_or_404(org_tree["region"].id)
        await svc.update_organization(region, {"name": "Independent"}, parent_id=None)
        assert region.parent_id is None
        assert region.level == 1
        assert region.name == "Independent"
        assert (await svc.get_or_404(org_tree["branch"].id)).level == 2

    async def test_rename_to_taken_name_conflicts(self, db_session, org_tree):
        svc = OrganizationService(db_session)
        region = await svc.get_or_404(org_tree["region"].id)
        with pytest.raises(ConflictError):
            await svc.update_organization(region, {"name": "South Region"})

    async def test_delete_policy(self, db_session, org_tree, make_user):
        svc = OrganizationService(db_session)

        with pytest.raises(ConflictError, match="root"):
            await svc.delete_organization(await svc.get_or_404(org_tree["head"].id))
        with pytest.raises(ConflictError, match="child"):
            await svc.delete_organization(await svc.get_or_404(org_tree["region"].id))

        await make_user(org=org_tree["sister"])
        with pytest.raises(ConflictError, match="users"):
            await svc.delete_organization(await svc.get_or_404(org_tree["sister"].id))

        await svc.delete_organization(await svc.get_or_404(org_tree["branch"].id))
        with pytest.raises(NotFoundError):
            await svc.get_or_404(org_tree["branch"].id)
        assert org_tree["branch"].id not in await svc.load_hierarchy()


@pytest.mark.integration
class TestRoleService:

    async def test_create_with_permissions(self, db_session, seeded):
        role = await RoleService(db_session).create_role(
            "Pricing Desk",
            permission_codes=[PermissionCode.PRICE_VIEW, "price:edit"],
        )
        assert role.slug == "pricing-desk"
        assert {p.code for p in role.permissions} == {"price:view", "price:edit"}
        assert role.is_system_role is False

    async def test_unknown_code_is_rejected(self, db_session, seeded):
        with pytest.raises(UnknownPermissionError):
            await RoleService(db_session).create_role("Typo", permission_codes=["price:veiw"])

    async def test_duplicate_name_and_slug(self, db_session, seeded):
        svc = RoleService(db_session)
        await svc.create_role("Auditors", slug="auditors")
        with pytest.raises(ConflictError):
            await svc.create_role("Auditors")
        with pytest.raises(ConflictError):
            await svc.create_role("Other Auditors", slug="auditors")

    async def test_set_permissions_replaces_set(self, db_session, make_role):
        svc = RoleService(db_session)
        role = await svc.get_or_404((await make_role("price:view", "org:view")).id)
        await svc.set_permissions(role, ["log:view"])
        assert [p.code for p in role.permissions] == ["log:view"]

    async def test_delete_policy(self, db_session, seeded, make_role, make_user):
        svc = RoleService(db_session)
        with pytest.raises(ConflictError, match="System"):
            await svc.delete_role(seeded["external"])

        assigned = await make_role("price:view")
        await make_user(roles=[assigned])
        with pytest.raises(ConflictError, match="assigned"):
            await svc.delete_role(assigned)

        unused = await make_role("price:view")
        await svc.delete_role(unused)
        assert await svc.get_by_id(unused.id) is None

    async def test_get_many_requires_every_id(self, db_session, seeded):
        svc = RoleService(db_session)
        roles = await svc.get_many([seeded["admin"].id, seeded["internal"].id])
        assert {r.slug for r in roles} == {"admin", "internal"}
        with pytest.raises(NotFoundError):
            await svc.get_many([seeded["admin"].id, "missing"])


@pytest.mark.integration
class TestUserService:

    async def test_create_user(self, db_session, seeded, org_tree):
        user = await UserService(db_session).create_user(
            username="clerk",
            password=TEST_PASSWORD,
            real_name="Desk Clerk",
            organization_id=org_tree["branch"].id,
            role_ids=[seeded["internal"].id],
        )
        assert user.password_hash != TEST_PASSWORD
        assert [r.slug for r in user.roles] == ["internal"]

    async def test_deleted_username_stays_reserved(self, db_session, make_user):
        svc = UserService(db_session)
        user = await make_user(username="former")
        await svc.delete_user(user)
        assert await svc.get_by_username("former") is None
        with pytest.raises(ConflictError):
            await svc.create_user(username="former", password=TEST_PASSWORD)

    async def test_update_profile_ignores_unsafe_fields(self, db_session, make_user, org_tree):
        svc = UserService(db_session)
        user = await make_user(org=org_tree["branch"])
        original_hash = user.password_hash
        await svc.update_profile(user, {"real_name": "Renamed", "password_hash": "x", "username": "y"})
        assert user.real_name == "Renamed"
        assert user.password_hash == original_hash
        assert user.username != "y"

    async def test_update_profile_can_detach_organization(self, db_session, make_user, org_tree):
        svc = UserService(db_session)
        user = await make_user(org=org_tree["branch"])
        await svc.update_profile(user, {"organization_id": None})
        assert user.organization_id is None

    async def test_list_users_scoped(self, db_session, make_user, org_tree):
        inside = await make_user(org=org_tree["branch"])
        await make_user(org=org_tree["sister"])
        items, total = await UserService(db_session).list_users(
            organization_ids={org_tree["region"].id, org_tree["branch"].id}
        )
        assert total == 1
        assert [u.id for u in items] == [inside.id]

        _, nothing = await UserService(db_session).list_users(organization_ids=frozenset())
        assert nothing == 0


@pytest.mark.integration
class TestAccessAndAuthService:

    async def test_principal_reflects_role_changes(self, db_session, make_user, make_role):
        user = await make_user(roles=["external"])
        principal = await load_principal(db_session, user.id)
        assert principal.permissions == frozenset({"price:view"})

        auditor = await make_role("log:view")
        await UserService(db_session).set_roles(user, [auditor.id])
        principal = await load_principal(db_session, user.id)
        assert principal.permissions == frozenset({"log:view"})

    async def test_admin_principal(self, db_session, admin_user):
        principal = await load_principal(db_session, admin_user.id)
        assert principal.is_admin
        assert ADMIN_MARKER in principal.permissions

    async def test_inactive_or_missing_user_has_no_principal(self, db_session, make_user):
        user = await make_user(is_active=False)
        assert await load_principal(db_session, user.id) is None
        assert await load_principal(db_session, "missing") is None

    async def test_login(self, db_session, make_user):
        user = await make_user(username="dispatcher", roles=["internal"])
        result = await AuthService(db_session).login("dispatcher", TEST_PASSWORD)
        assert result is not None
        assert result["token_type"] == "bearer"
        assert result["principal"].id == user.id
        assert "price:view" in result["principal"].permissions
        assert user.last_login_at is not None

    async def test_login_failures(self, db_session, make_user):
        await make_user(username="locked", is_active=False)
        svc = AuthService(db_session)
        assert await svc.login("locked", TEST_PASSWORD) is None
        assert await svc.login("nobody", TEST_PASSWORD) is None

    async def test_refresh(self, db_session, make_user):
        await make_user(username="driver")
        svc = AuthService(db_session)
        tokens = await svc.login("driver", TEST_PASSWORD)
        refreshed = await svc.refresh(tokens["refresh_token"])
        assert refreshed["access_token"]


@pytest.mark.integration
class TestSeed:

    async def test_seed_is_idempotent(self, db_session):
        first = await seed_defaults(db_session)
        second = await seed_defaults(db_session)
        assert first["admin_created"] is True
        assert second["admin_created"] is False
        assert first["root_organization_id"] == second["root_organization_id"]

        permission_count = (await db_session.execute(select(func.count()).select_from(Permission))).scalar()
        role_count = (await db_session.execute(select(func.count()).select_from(Role))).scalar()
        org_count = (await db_session.execute(select(func.count()).select_from(Organization))).scalar()
        assert permission_count == len(PermissionCode)
        assert role_count == 4
        assert org_count == 1

    async def test_default_role_permission_sets(self, db_session):
        permissions = await seed_permissions(db_session)
        roles = await seed_roles(db_session, permissions)
        codes = {slug: {p.code for p in role.permissions} for slug, role in roles.items()}
        assert codes["external"] == {"price:view"}
        assert "config:edit" not in codes["manager"]
        assert codes["admin"] == {c.value for c in PermissionCode}
        assert all(role.is_system_role for role in roles.values())

    async def test_edited_role_survives_reseed(self, db_session):
        permissions = await seed_permissions(db_session)
        roles = await seed_roles(db_session, permissions)
        roles["external"].permissions = []
        await db_session.flush()

        roles = await seed_roles(db_session, await seed_permissions(db_session))
        assert roles["external"].permissions == []


@pytest.mark.integration
class TestAnnouncementService:

    async def _announce(self, svc, title, publish_offset_hours, expire_offset_hours=None, is_active=True):
        now = utc_now()
        return await svc.create_announcement(
            {
                "title": title,
                "content": f"{title} body",
                "publish_time": now + timedelta(hours=publish_offset_hours),
                "expire_time": (
                    now + timedelta(hours=expire_offset_hours) if expire_offset_hours is not None else None
                ),
                "is_active": is_active,
            }
        )

    async def test_published_feed_window(self, db_session):
        svc = AnnouncementService(db_session)
        await self._announce(svc, "Rate card", -2)
        await self._announce(svc, "Holiday hours", -1, expire_offset_hours=24)
        await self._announce(svc, "Expired", -48, expire_offset_hours=-24)
        await self._announce(svc, "Scheduled", 24)
        await self._announce(svc, "Draft", -1, is_active=False)

        feed = await svc.published()
        assert [a.title for a in feed] == ["Holiday hours", "Rate card"]

    async def test_feed_is_capped(self, db_session):
        svc = AnnouncementService(db_session)
        for i in range(12):
            await self._announce(svc, f"Notice {i}", -(i + 1))
        feed = await svc.published()
        assert len(feed) == 10
        assert feed[0].title == "Notice 0"

    async def test_expiry_before_publish_is_rejected(self, db_session):
        svc = AnnouncementService(db_session)
        with pytest.raises(BadRequestError):
            await self._announce(svc, "Backwards", 2, expire_offset_hours=1)

        announcement = await self._announce(svc, "Forward", 0, expire_offset_hours=1)
        with pytest.raises(BadRequestError):
            await svc.update_announcement(
                announcement, {"expire_time": utc_now() - timedelta(days=1)}
            )

    async def test_update_can_clear_expiry(self, db_session):
        svc = AnnouncementService(db_session)
        announcement = await self._announce(svc, "Temporary", -1, expire_offset_hours=1)
        announcement = await svc.update_announcement(announcement, {"expire_time": None})
        assert announcement.expire_time is None


@pytest.mark.integration
class TestConfigurationService:

    async def test_type_filter_uses_key_prefixes(self, db_session):
        svc = ConfigurationService(db_session)
        for key in ("COMPANY_NAME", "SYSTEM_TIMEZONE", "DEFAULT_CURRENCY", "WEIGHT_UNIT", "MISC_FLAG"):
            await svc.create_configuration({"config_key": key, "config_value": "x"})

        system, total = await svc.list_configurations(config_type=ConfigurationType.SYSTEM)
        assert [c.config_key for c in system] == ["COMPANY_NAME", "SYSTEM_TIMEZONE"]
        assert total == 2

        business, _ = await svc.list_configurations(config_type=ConfigurationType.BUSINESS)
        assert [c.config_key for c in business] == ["DEFAULT_CURRENCY", "WEIGHT_UNIT"]

        everything, total = await svc.list_configurations()
        assert total == 5

    async def test_duplicate_key_conflicts(self, db_session):
        svc = ConfigurationService(db_session)
        await svc.create_configuration({"config_key": "PRICE_ROUNDING", "config_value": "2"})
        with pytest.raises(ConflictError):
            await svc.create_configuration({"config_key": "PRICE_ROUNDING", "config_value": "3"})

    async def test_key_is_not_editable(self, db_session):
        svc = ConfigurationService(db_session)
        config = await svc.create_configuration({"config_key": "CONTACT_EMAIL", "config_value": "a@b.c"})
        config = await svc.update_configuration(config, {"config_key": "HIJACKED", "config_value": "d@e.f"})
        assert config.config_key == "CONTACT_EMAIL"
        assert config.config_value == "d@e.f"

    async def test_refresh_loads_active_entries(self, db_session):
        svc = ConfigurationService(db_session)
        await svc.create_configuration({"config_key": "DEFAULT_CURRENCY", "config_value": "USD"})
        await svc.create_configuration(
            {"config_key": "VOLUME_DIVISOR", "config_value": "6000", "is_active": False}
        )
        removed = await svc.create_configuration({"config_key": "COMPANY_NAME", "config_value": "Old"})
        await svc.delete_configuration(removed)

        snapshot = await svc.refresh()
        assert dict(snapshot) == {"DEFAULT_CURRENCY": "USD"}
        assert current_configuration() is snapshot
        with pytest.raises(TypeError):
            snapshot["DEFAULT_CURRENCY"] = "EUR"


@pytest.mark.integration
class TestOperationLogService:

    async def test_operation_and_date_filters(self, db_session, make_user, seeded):
        user = await make_user(roles=["admin"])
        principal = await load_principal(db_session, user.id)
        svc = OperationLogService(db_session)
        await svc.record(principal, OperationModule.USER, OperationAction.RESET_PASSWORD)
        await svc.record(principal, OperationModule.PRICE, OperationAction.CREATE)
        old = await svc.record(principal, OperationModule.ROLE, OperationAction.ASSIGN_PERMISSIONS)
        old.created_at = utc_now() - timedelta(days=30)
        await db_session.flush()

        items, total = await svc.list_logs(operation="assign")
        assert total == 1 and items[0].module == "role"

        items, total = await svc.list_logs(start_date=utc_now() - timedelta(days=1))
        assert {i.module for i in items} == {"user", "price"}

        items, total = await svc.list_logs(end_date=utc_now() - timedelta(days=1))
        assert [i.id for i in items] == [old.id]

        rows = await svc.export_rows(module="price")
        assert [(r.username, r.operation) for r in rows] == [(user.username, "create")]
