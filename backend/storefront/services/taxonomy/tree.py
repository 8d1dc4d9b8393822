from __future__ import annotations

import unicodedata
from collections import defaultdict
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol


class NodeLike(Protocol):
    id: Any
    parent_id: Any
    name: str
    slug: str
    sort_order: int


@dataclass
class TreeNode:
    """Read-only projection of a taxonomy node with its position in the tree."""

    id: Any
    name: str
    slug: str
    parent_id: Any
    sort_order: int
    is_active: bool
    description: str
    image: str | None
    depth: int
    path: str
    children: list[TreeNode] = field(default_factory=list)


def name_sort_key(name: str) -> str:
    """Case- and accent-insensitive key, so "apple" and "Ärr" sort before "Banana"."""
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def sibling_sort_key(node: NodeLike) -> tuple[int, str, str]:
    return (node.sort_order, name_sort_key(node.name), node.name)


def group_by_parent(nodes: Iterable[NodeLike]) -> dict[Hashable, list[NodeLike]]:
    grouped: dict[Hashable, list[NodeLike]] = defaultdict(list)
    for node in nodes:
        grouped[node.parent_id].append(node)
    return grouped


def build_tree(
    nodes: Sequence[NodeLike],
    parent_id: Any = None,
    depth: int = 0,
    parent_path: str = "",
) -> list[TreeNode]:
    """Assemble the forest hanging under ``parent_id``.

    Nodes are grouped by parent once, so each level only sorts its own
    siblings. A node whose parent is absent from ``nodes`` is never reached.
    """
    grouped = group_by_parent(nodes)
    return _build_level(grouped, parent_id, depth, parent_path, set())


def _build_level(
    grouped: dict[Hashable, list[NodeLike]],
    parent_id: Any,
    depth: int,
    parent_path: str,
    seen: set[Hashable],
) -> list[TreeNode]:
    level: list[TreeNode] = []
    for node in sorted(grouped.get(parent_id, []), key=sibling_sort_key):
        # Corrupt cyclic data must not recurse forever.
        if node.id in seen:
            continue
        seen.add(node.id)

        path = f"{parent_path}/{node.slug}" if parent_path else node.slug
        tree_node = TreeNode(
            id=node.id,
            name=node.name,
            slug=node.slug,
            parent_id=parent_id,
            sort_order=node.sort_order,
            is_active=bool(getattr(node, "is_active", True)),
            description=getattr(node, "description", "") or "",
            image=getattr(node, "image", None),
            depth=depth,
            path=path,
        )
        tree_node.children = _build_level(grouped, node.id, depth + 1, path, seen)
        level.append(tree_node)
    return level


def flatten_tree(tree: Sequence[TreeNode]) -> list[TreeNode]:
    flat: list[TreeNode] = []
    stack = list(reversed(tree))
    while stack:
        node = stack.pop()
        flat.append(node)
        stack.extend(reversed(node.children))
    return flat


def format_tree_for_select(tree: Sequence[TreeNode]) -> list[dict[str, Any]]:
    """Options for a parent picker, indented with one em-dash per level."""
    options: list[dict[str, Any]] = []
    for node in flatten_tree(tree):
        prefix = f"{'—' * node.depth} " if node.depth > 0 else ""
        options.append(
            {
                "value": str(node.id),
                "label": f"{prefix}{node.name}",
                "depth": node.depth,
                "disabled": not node.is_active,
            }
        )
    return options
