"""Access control evaluator.

Pure functions answering "may this principal do X". Nothing here touches
the database: callers pass in the principal and, for scope checks, a
hierarchy snapshot built by :mod:`core.hierarchy`.
"""

import logging
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Optional

from core.hierarchy import OrganizationHierarchy
from core.permissions import ADMIN_MARKER, is_registered

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """The authenticated actor of one request.

    ``permissions`` is the effective, flattened permission set: the union of
    the codes of every active role, plus :data:`ADMIN_MARKER` for holders of
    the admin role. It is derived per request and never persisted.
    """

    id: str
    username: str
    roles: frozenset = frozenset()
    permissions: frozenset = frozenset()
    organization_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return ADMIN_MARKER in self.permissions

    @classmethod
    def from_user(cls, user: Any) -> "Principal":
        """Flatten a user row with loaded ``roles -> permissions`` into a principal.

        Inactive or soft-deleted roles and permissions contribute nothing.
        """
        role_slugs: set[str] = set()
        codes: set[str] = set()
        for role in user.roles or []:
            if not role.is_active or getattr(role, "is_deleted", False):
                continue
            role_slugs.add(role.slug)
            for permission in role.permissions or []:
                if not permission.is_active or getattr(permission, "is_deleted", False):
                    continue
                codes.add(permission.code)

        if ADMIN_MARKER in role_slugs:
            codes.add(ADMIN_MARKER)

        return cls(
            id=user.id,
            username=user.username,
            roles=frozenset(role_slugs),
            permissions=frozenset(codes),
            organization_id=user.organization_id,
        )


def _code_value(code) -> str:
    return getattr(code, "value", code)


def has_permission(principal: Optional[Principal], code) -> bool:
    """True iff ``code`` is registered and granted (directly or via the admin marker).

    Unknown codes are never granted, not even to administrators.
    """
    if principal is None:
        return False
    code = _code_value(code)
    if not is_registered(code):
        return False
    return ADMIN_MARKER in principal.permissions or code in principal.permissions


def has_any_permission(principal: Optional[Principal], codes: Iterable) -> bool:
    """True iff at least one of ``codes`` passes :func:`has_permission`."""
    return any(has_permission(principal, code) for code in codes)


def has_all_permissions(principal: Optional[Principal], codes: Iterable) -> bool:
    """True iff every code passes :func:`has_permission`. An empty list passes."""
    return all(has_permission(principal, code) for code in codes)


def can_access_organization_scope(
    principal: Optional[Principal],
    target_org_id: Hashable,
    hierarchy: OrganizationHierarchy,
) -> bool:
    """True iff the target organization lies within the principal's subtree.

    Administrators see every organization. A principal without an
    organization sees none.
    """
    if principal is None:
        return False
    if principal.is_admin:
        return True
    if principal.organization_id is None:
        return False
    return hierarchy.is_in_subtree(principal.organization_id, target_org_id)


def scoped_organization_ids(
    principal: Optional[Principal],
    hierarchy: OrganizationHierarchy,
) -> Optional[frozenset]:
    """Organization ids a principal may see; None means unrestricted (admin)."""
    if principal is None:
        return frozenset()
    if principal.is_admin:
        return None
    if principal.organization_id is None or principal.organization_id not in hierarchy:
        return frozenset()
    return frozenset((principal.organization_id, *hierarchy.descendants_of(principal.organization_id)))
