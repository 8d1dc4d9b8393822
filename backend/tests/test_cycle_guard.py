from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest

from storefront.core.exceptions import StructuralConflictError
from storefront.services.taxonomy.cycle_guard import (
    get_ancestor_ids,
    get_breadcrumb,
    get_depth,
    get_descendant_ids,
    validate_no_parent_cycle,
    would_create_cycle,
)


@dataclass
class Node:
    id: UUID
    name: str
    slug: str
    parent_id: UUID | None = None


def chain() -> tuple[dict[UUID, Node], Node, Node, Node]:
    a = Node(uuid4(), "A", "a")
    b = Node(uuid4(), "B", "b", a.id)
    c = Node(uuid4(), "C", "c", b.id)
    return {node.id: node for node in (a, b, c)}, a, b, c


def test_ancestors_are_nearest_first() -> None:
    nodes, a, b, c = chain()
    assert get_ancestor_ids(c.id, nodes) == [b.id, a.id]
    assert get_ancestor_ids(a.id, nodes) == []
    assert get_depth(c.id, nodes) == 2


def test_no_parent_never_cycles() -> None:
    nodes, a, _, _ = chain()
    assert would_create_cycle(a.id, None, nodes) is False


def test_self_parent_is_a_cycle() -> None:
    nodes, a, b, c = chain()
    for node in (a, b, c):
        assert would_create_cycle(node.id, node.id, nodes) is True


def test_moving_under_a_descendant_is_a_cycle() -> None:
    nodes, a, b, c = chain()
    assert would_create_cycle(a.id, c.id, nodes) is True
    assert would_create_cycle(b.id, c.id, nodes) is True
    assert would_create_cycle(c.id, a.id, nodes) is False


def test_validate_raises_structural_conflict_on_parent_field() -> None:
    nodes, a, _, c = chain()
    with pytest.raises(StructuralConflictError) as exc_info:
        validate_no_parent_cycle(a.id, c.id, nodes)
    assert exc_info.value.field == "parent_id"
    validate_no_parent_cycle(c.id, None, nodes)


def test_walks_stop_on_corrupted_loops() -> None:
    x = Node(uuid4(), "X", "x")
    y = Node(uuid4(), "Y", "y", x.id)
    x.parent_id = y.id
    nodes = {x.id: x, y.id: y}

    assert get_ancestor_ids(x.id, nodes) == [y.id, x.id]
    assert [crumb["slug"] for crumb in get_breadcrumb(x.id, nodes)] == ["y", "x"]
    assert get_descendant_ids(x.id, nodes) == [y.id]

    unrelated = Node(uuid4(), "Z", "z")
    nodes[unrelated.id] = unrelated
    assert would_create_cycle(unrelated.id, x.id, nodes) is False


def test_breadcrumb_is_root_first() -> None:
    nodes, a, b, c = chain()
    crumbs = get_breadcrumb(c.id, nodes)
    assert crumbs == [
        {"id": a.id, "name": "A", "slug": "a"},
        {"id": b.id, "name": "B", "slug": "b"},
        {"id": c.id, "name": "C", "slug": "c"},
    ]
    assert get_breadcrumb(uuid4(), nodes) == []


def test_descendants_breadth_first() -> None:
    nodes, a, b, c = chain()
    d = Node(uuid4(), "D", "d", a.id)
    nodes[d.id] = d
    assert get_descendant_ids(a.id, nodes) == [b.id, d.id, c.id]
    assert get_descendant_ids(c.id, nodes) == []
