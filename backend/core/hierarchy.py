"""Organization hierarchy builder.

Turns a flat list of organization records (each carrying its own id and a
nullable parent id) into an immutable forest snapshot with arena-style
storage: one id -> record map plus parent and children indices. Every
traversal is guarded by a visited set, so malformed data (cycles, dangling
parents, duplicate ids) produces diagnostics instead of hanging.

Usage:
    hierarchy = build_hierarchy(records)
    hierarchy.roots                    # root ids in input order
    hierarchy.ancestors_of(org_id)     # AncestorChain(ids, cyclic)
    hierarchy.is_in_subtree(a, b)      # scope check
    hierarchy.to_tree()                # nested dicts for the API
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Hashable, Iterable, Mapping, NamedTuple, Optional

from core.exceptions import CyclicHierarchyError

logger = logging.getLogger(__name__)


class HierarchyIssue(str, Enum):
    """Data-quality problems found while building a hierarchy."""

    DANGLING_PARENT_REFERENCE = "dangling_parent_reference"
    CYCLIC_HIERARCHY = "cyclic_hierarchy"
    DUPLICATE_ID = "duplicate_id"


@dataclass(frozen=True)
class HierarchyDiagnostic:
    """One data-quality finding, attached to the organization it concerns."""

    issue: HierarchyIssue
    org_id: Hashable
    detail: str = ""


@dataclass(frozen=True)
class OrganizationRecord:
    """Read-only copy of the organization fields the hierarchy needs."""

    id: Hashable
    parent_id: Optional[Hashable] = None
    name: str = ""
    level: Optional[int] = None
    is_active: bool = True
    description: Optional[str] = None

    @classmethod
    def from_object(cls, obj: Any) -> "OrganizationRecord":
        """Snapshot an ORM row (or any object with matching attributes)."""
        if isinstance(obj, Mapping):
            return cls.from_mapping(obj)
        return cls(
            id=obj.id,
            parent_id=getattr(obj, "parent_id", None),
            name=getattr(obj, "name", "") or "",
            level=getattr(obj, "level", None),
            is_active=getattr(obj, "is_active", True),
            description=getattr(obj, "description", None),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OrganizationRecord":
        return cls(
            id=data["id"],
            parent_id=data.get("parent_id"),
            name=data.get("name", "") or "",
            level=data.get("level"),
            is_active=data.get("is_active", True),
            description=data.get("description"),
        )


class AncestorChain(NamedTuple):
    """Result of walking parent links from one organization.

    ``ids`` is nearest-first and never contains the starting organization.
    ``cyclic`` is True when the walk revisited a node before reaching a
    root; ``ids`` then holds the partial chain walked so far.
    """

    ids: tuple
    cyclic: bool = False


class LevelMismatch(NamedTuple):
    org_id: Hashable
    stored_level: int
    computed_depth: int


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def record_to_dict(record: Any) -> dict[str, Any]:
    """Default serializer used by :meth:`OrganizationHierarchy.to_tree`."""
    return {
        "id": _field(record, "id"),
        "name": _field(record, "name", ""),
        "parent_id": _field(record, "parent_id"),
        "level": _field(record, "level"),
        "is_active": _field(record, "is_active", True),
        "description": _field(record, "description"),
    }


class OrganizationHierarchy:
    """Immutable forest snapshot over a flat organization list.

    Built by :func:`build_hierarchy`; never mutated afterwards, so it can be
    shared between concurrent scope checks.
    """

    def __init__(
        self,
        nodes: dict,
        parent_of: dict,
        children_of: dict,
        roots: tuple,
        cyclic_ids: frozenset,
        diagnostics: tuple,
    ):
        self._nodes = MappingProxyType(nodes)
        self._parent_of = MappingProxyType(parent_of)
        self._children_of = MappingProxyType(children_of)
        self._roots = roots
        self._cyclic_ids = cyclic_ids
        self._diagnostics = diagnostics

    # ─── Accessors ─────────────────────────────────────────

    @property
    def roots(self) -> tuple:
        return self._roots

    @property
    def diagnostics(self) -> tuple[HierarchyDiagnostic, ...]:
        return self._diagnostics

    @property
    def cyclic_ids(self) -> frozenset:
        return self._cyclic_ids

    @property
    def is_acyclic(self) -> bool:
        return not self._cyclic_ids

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, org_id: Hashable) -> bool:
        return org_id in self._nodes

    def get(self, org_id: Hashable) -> Optional[Any]:
        """Return the record stored for ``org_id`` (None if unknown)."""
        return self._nodes.get(org_id)

    def parent_of(self, org_id: Hashable) -> Optional[Hashable]:
        """Effective parent id; None for roots, dangling records and unknown ids."""
        return self._parent_of.get(org_id)

    def children_of(self, org_id: Hashable) -> tuple:
        return self._children_of.get(org_id, ())

    def diagnostics_for(self, issue: HierarchyIssue) -> tuple[HierarchyDiagnostic, ...]:
        return tuple(d for d in self._diagnostics if d.issue == issue)

    # ─── Traversals ────────────────────────────────────────

    def ancestors_of(self, org_id: Hashable) -> AncestorChain:
        """Walk parent links from ``org_id`` up to its root.

        Terminates on malformed data: a revisited node ends the walk with
        ``cyclic=True``.
        """
        if org_id not in self._nodes:
            return AncestorChain(())

        chain: list = []
        seen = {org_id}
        current = self._parent_of.get(org_id)
        while current is not None:
            if current in seen:
                logger.warning(
                    "Cyclic organization hierarchy detected while walking ancestors of %s at %s",
                    org_id,
                    current,
                )
                return AncestorChain(tuple(chain), cyclic=True)
            seen.add(current)
            chain.append(current)
            current = self._parent_of.get(current)
        return AncestorChain(tuple(chain))

    def descendants_of(self, org_id: Hashable) -> tuple:
        """All organizations below ``org_id``, breadth-first, excluding itself."""
        if org_id not in self._nodes:
            return ()

        result: list = []
        seen = {org_id}
        queue = deque(self._children_of.get(org_id, ()))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            queue.extend(self._children_of.get(current, ()))
        return tuple(result)

    def depth_of(self, org_id: Hashable) -> Optional[int]:
        """Depth computed from the parent chain (roots are 1).

        None for unknown ids and for organizations whose chain is cyclic.
        """
        if org_id not in self._nodes:
            return None
        chain = self.ancestors_of(org_id)
        if chain.cyclic:
            return None
        return len(chain.ids) + 1

    def is_in_subtree(self, scope_root_id: Hashable, target_id: Hashable) -> bool:
        """True iff ``target_id`` is ``scope_root_id`` or one of its descendants.

        Unknown ids and targets whose ancestor chain is cyclic are never in scope.
        """
        if scope_root_id not in self._nodes or target_id not in self._nodes:
            return False
        if scope_root_id == target_id:
            return True
        chain = self.ancestors_of(target_id)
        if chain.cyclic:
            return False
        return scope_root_id in chain.ids

    def would_create_cycle(self, org_id: Hashable, new_parent_id: Optional[Hashable]) -> bool:
        """Check whether re-parenting ``org_id`` under ``new_parent_id`` closes a loop."""
        if new_parent_id is None:
            return False
        if new_parent_id == org_id:
            return True
        chain = self.ancestors_of(new_parent_id)
        return chain.cyclic or org_id in chain.ids

    def level_mismatches(self) -> tuple[LevelMismatch, ...]:
        """Organizations whose stored ``level`` differs from their computed depth."""
        mismatches = []
        for org_id, record in self._nodes.items():
            stored = _field(record, "level")
            computed = self.depth_of(org_id)
            if stored is None or computed is None:
                continue
            if stored != computed:
                mismatches.append(LevelMismatch(org_id, stored, computed))
        return tuple(mismatches)

    def raise_for_cycles(self) -> None:
        """Raise CyclicHierarchyError if any organization sits on a cycle."""
        if self._cyclic_ids:
            raise CyclicHierarchyError(self._cyclic_ids)

    # ─── Serialization ─────────────────────────────────────

    def to_tree(
        self,
        serialize: Optional[Callable[[Any], dict]] = None,
        root_id: Optional[Hashable] = None,
    ) -> list[dict]:
        """Render the forest (or the subtree under ``root_id``) as nested dicts.

        Each node is a fresh dict with ``depth`` and ``children`` keys added,
        so callers may mutate the result without touching the snapshot.
        Organizations on or below a cycle are not reachable from any root and
        therefore never rendered.
        """
        serialize = serialize or record_to_dict
        if root_id is None:
            starts = self._roots
        elif root_id in self._nodes:
            starts = (root_id,)
        else:
            return []

        forest: list[dict] = []
        queue: deque = deque()
        seen: set = set()
        for start in starts:
            node = self._render(start, serialize, self.depth_of(start) or 1)
            forest.append(node)
            seen.add(start)
            queue.append((start, node))

        while queue:
            org_id, rendered = queue.popleft()
            for child_id in self._children_of.get(org_id, ()):
                if child_id in seen:
                    continue
                seen.add(child_id)
                child = self._render(child_id, serialize, rendered["depth"] + 1)
                rendered["children"].append(child)
                queue.append((child_id, child))
        return forest

    def _render(self, org_id: Hashable, serialize: Callable[[Any], dict], depth: int) -> dict:
        node = dict(serialize(self._nodes[org_id]))
        node["depth"] = depth
        node["children"] = []
        return node


def _find_cycles(order: list, parent_of: dict) -> list[list]:
    """Return every parent-link cycle, each as its member ids in walk order."""
    done: set = set()
    cycles: list[list] = []
    for start in order:
        if start in done:
            continue
        path: list = []
        position: dict = {}
        current = start
        while current is not None and current not in done and current not in position:
            position[current] = len(path)
            path.append(current)
            current = parent_of.get(current)
        if current is not None and current in position:
            cycles.append(path[position[current]:])
        done.update(path)
    return cycles


def build_hierarchy(records: Iterable[Any]) -> OrganizationHierarchy:
    """Build an :class:`OrganizationHierarchy` from flat organization records.

    Records may be ORM rows, mappings or :class:`OrganizationRecord` values;
    each must expose ``id`` and ``parent_id``.

    Policies:
        - duplicate ids: last write wins; children attach to the winning record
        - parent id not in the input: the record becomes a root and a
          DANGLING_PARENT_REFERENCE diagnostic is recorded once for it
        - cycles: members get a CYCLIC_HIERARCHY diagnostic and are left out
          of the forest
        - children and roots keep input order

    Raises:
        ValueError: If a record has no id
    """
    records = list(records)
    nodes: dict = {}
    diagnostics: list[HierarchyDiagnostic] = []

    # Pass 1: id -> record
    for record in records:
        org_id = _field(record, "id")
        if org_id is None:
            raise ValueError("Organization record is missing an id")
        if org_id in nodes:
            diagnostics.append(
                HierarchyDiagnostic(HierarchyIssue.DUPLICATE_ID, org_id, "superseded by a later record")
            )
        nodes[org_id] = record

    # Pass 2: link winners under their parents, in input order
    order: list = []
    parent_of: dict = {}
    children_of: dict = {}
    roots: list = []
    for record in records:
        org_id = _field(record, "id")
        if nodes[org_id] is not record:
            continue
        order.append(org_id)
        children_of.setdefault(org_id, [])
        declared_parent = _field(record, "parent_id")
        if declared_parent is None:
            parent_of[org_id] = None
            roots.append(org_id)
        elif declared_parent not in nodes:
            parent_of[org_id] = None
            roots.append(org_id)
            diagnostics.append(
                HierarchyDiagnostic(
                    HierarchyIssue.DANGLING_PARENT_REFERENCE,
                    org_id,
                    f"parent {declared_parent} does not exist",
                )
            )
        else:
            parent_of[org_id] = declared_parent
            children_of.setdefault(declared_parent, []).append(org_id)

    cyclic_ids: set = set()
    for cycle in _find_cycles(order, parent_of):
        cyclic_ids.update(cycle)
        for member in cycle:
            diagnostics.append(
                HierarchyDiagnostic(
                    HierarchyIssue.CYCLIC_HIERARCHY,
                    member,
                    "cycle: " + " -> ".join(str(m) for m in cycle),
                )
            )

    for diagnostic in diagnostics:
        logger.warning(
            "Organization hierarchy issue: %s on %s (%s)",
            diagnostic.issue.value,
            diagnostic.org_id,
            diagnostic.detail,
        )

    return OrganizationHierarchy(
        nodes=nodes,
        parent_of=parent_of,
        children_of={k: tuple(v) for k, v in children_of.items()},
        roots=tuple(roots),
        cyclic_ids=frozenset(cyclic_ids),
        diagnostics=tuple(diagnostics),
    )
