"""Ancestor walks over a snapshot of one taxonomy kind.

Every function takes ``nodes_by_id``, a mapping from id to a node exposing
``parent_id`` (plus ``name`` and ``slug`` for breadcrumbs). All walks keep a
visited set, so rows that already form a loop end the walk instead of hanging.
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Hashable, Mapping
from typing import Any

from storefront.core.exceptions import StructuralConflictError

CYCLE_MESSAGE = "Cannot set parent: this would create a circular reference in the category tree"


def get_ancestor_ids(node_id: Hashable, nodes_by_id: Mapping[Hashable, Any]) -> list[Hashable]:
    """Ids of the node's ancestors, nearest parent first."""
    ancestors: list[Hashable] = []
    visited: set[Hashable] = set()
    current = node_id

    while current is not None and current not in visited:
        visited.add(current)
        node = nodes_by_id.get(current)
        if node is None or node.parent_id is None:
            break
        ancestors.append(node.parent_id)
        current = node.parent_id

    return ancestors


def get_depth(node_id: Hashable, nodes_by_id: Mapping[Hashable, Any]) -> int:
    return len(get_ancestor_ids(node_id, nodes_by_id))


def get_descendant_ids(node_id: Hashable, nodes_by_id: Mapping[Hashable, Any]) -> list[Hashable]:
    children_by_parent: dict[Hashable, list[Hashable]] = defaultdict(list)
    for candidate_id, node in nodes_by_id.items():
        if node.parent_id is not None:
            children_by_parent[node.parent_id].append(candidate_id)

    descendants: list[Hashable] = []
    visited: set[Hashable] = {node_id}
    queue = deque([node_id])
    while queue:
        current = queue.popleft()
        for child_id in children_by_parent.get(current, []):
            if child_id in visited:
                continue
            visited.add(child_id)
            descendants.append(child_id)
            queue.append(child_id)
    return descendants


def would_create_cycle(
    node_id: Hashable,
    proposed_parent_id: Hashable | None,
    nodes_by_id: Mapping[Hashable, Any],
) -> bool:
    if proposed_parent_id is None:
        return False
    if proposed_parent_id == node_id:
        return True
    # The new parent must not sit below the node being moved.
    return node_id in get_ancestor_ids(proposed_parent_id, nodes_by_id)


def validate_no_parent_cycle(
    node_id: Hashable,
    proposed_parent_id: Hashable | None,
    nodes_by_id: Mapping[Hashable, Any],
) -> None:
    if would_create_cycle(node_id, proposed_parent_id, nodes_by_id):
        raise StructuralConflictError(CYCLE_MESSAGE, field="parent_id")


def get_breadcrumb(node_id: Hashable, nodes_by_id: Mapping[Hashable, Any]) -> list[dict[str, Any]]:
    """Root-first ``{id, name, slug}`` entries ending with the node itself."""
    breadcrumb: deque[dict[str, Any]] = deque()
    visited: set[Hashable] = set()
    current = node_id

    while current is not None and current not in visited:
        visited.add(current)
        node = nodes_by_id.get(current)
        if node is None:
            break
        breadcrumb.appendleft({"id": node.id, "name": node.name, "slug": node.slug})
        current = node.parent_id

    return list(breadcrumb)
