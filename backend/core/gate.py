"""Authorization gate.

The single choke point protected operations pass through before they reach
persistence. A check moves from PENDING to ALLOWED or DENIED and stops
there; denials are returned as values, never raised, and carry only a
uniform client-visible message.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Hashable, Iterable, Optional, Union

from core.access import (
    Principal,
    can_access_organization_scope,
    has_all_permissions,
    has_any_permission,
)
from core.exceptions import ForbiddenError, UnauthorizedError
from core.hierarchy import OrganizationHierarchy
from core.permissions import PermissionCode

logger = logging.getLogger(__name__)

UNAUTHENTICATED_MESSAGE = "Please log in"
FORBIDDEN_MESSAGE = "Insufficient permission"


class GateState(str, Enum):
    PENDING = "pending"
    ALLOWED = "allowed"
    DENIED = "denied"


class DenialReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class GateDecision:
    """Terminal outcome of one authorization check."""

    state: GateState
    principal: Optional[Principal] = None
    reason: Optional[DenialReason] = None

    @property
    def allowed(self) -> bool:
        return self.state == GateState.ALLOWED

    @property
    def message(self) -> Optional[str]:
        if self.reason == DenialReason.UNAUTHENTICATED:
            return UNAUTHENTICATED_MESSAGE
        if self.reason == DenialReason.FORBIDDEN:
            return FORBIDDEN_MESSAGE
        return None

    @property
    def status_code(self) -> int:
        if self.reason == DenialReason.UNAUTHENTICATED:
            return 401
        if self.reason == DenialReason.FORBIDDEN:
            return 403
        return 200

    def raise_for_denial(self) -> Principal:
        """Convert a denial into the matching HTTP-mapped exception.

        Returns:
            The principal, when the decision is ALLOWED
        """
        if self.reason == DenialReason.UNAUTHENTICATED:
            raise UnauthorizedError(UNAUTHENTICATED_MESSAGE)
        if self.reason == DenialReason.FORBIDDEN:
            raise ForbiddenError(FORBIDDEN_MESSAGE)
        return self.principal


def _normalize(required: Union[str, PermissionCode, Iterable, None]) -> tuple[str, ...]:
    if required is None:
        return ()
    if isinstance(required, (str, PermissionCode)):
        required = (required,)
    return tuple(getattr(code, "value", code) for code in required)


def authorize(
    principal: Optional[Principal],
    required: Union[str, PermissionCode, Iterable, None] = None,
    *,
    require_all: bool = False,
    target_org_id: Optional[Hashable] = None,
    hierarchy: Optional[OrganizationHierarchy] = None,
) -> GateDecision:
    """Decide whether ``principal`` may run an operation.

    Args:
        principal: Principal resolved for this request, or None
        required: Permission code(s); any-of unless ``require_all``
        require_all: Require every listed code instead of any one
        target_org_id: Organization the operation touches, for scope checks
        hierarchy: Snapshot to evaluate ``target_org_id`` against

    Returns:
        GateDecision in state ALLOWED or DENIED

    Raises:
        ValueError: If a scope target is given without a hierarchy
    """
    if target_org_id is not None and hierarchy is None:
        raise ValueError("Organization scope check requires a hierarchy snapshot")

    if principal is None:
        logger.info("Gate denied: no principal")
        return GateDecision(GateState.DENIED, reason=DenialReason.UNAUTHENTICATED)

    codes = _normalize(required)
    if codes:
        check = has_all_permissions if require_all else has_any_permission
        if not check(principal, codes):
            logger.warning(
                "Gate denied: user=%s required=%s mode=%s",
                principal.username,
                list(codes),
                "all" if require_all else "any",
            )
            return GateDecision(GateState.DENIED, principal=principal, reason=DenialReason.FORBIDDEN)

    if target_org_id is not None and not can_access_organization_scope(principal, target_org_id, hierarchy):
        logger.warning(
            "Gate denied: user=%s org=%s outside scope of org=%s",
            principal.username,
            target_org_id,
            principal.organization_id,
        )
        return GateDecision(GateState.DENIED, principal=principal, reason=DenialReason.FORBIDDEN)

    return GateDecision(GateState.ALLOWED, principal=principal)


async def guarded(
    principal: Optional[Principal],
    required: Union[str, PermissionCode, Iterable, None],
    operation: Callable[[], Awaitable[Any]],
    **kwargs: Any,
) -> tuple[GateDecision, Any]:
    """Run ``operation`` only if the gate allows it.

    The operation is not invoked at all on denial, so nothing it would
    persist can leak through. Extra keyword arguments go to :func:`authorize`.

    Returns:
        Tuple of (decision, operation result or None)
    """
    decision = authorize(principal, required, **kwargs)
    if not decision.allowed:
        return decision, None
    return decision, await operation()
