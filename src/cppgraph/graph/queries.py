# cppgraph/graph/queries.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Read-only queries over a built graph.

All functions take a GraphStore and entity ids, and return ids in
deterministic (first-seen, nearest-first) order.
"""

from collections import deque
from typing import Optional

from .models import SEPARATOR, EdgeKind, EntityKind, split_name
from .store import GraphStore


def ancestors(store: GraphStore, class_id: str) -> list[str]:
    """Every base class of class_id, direct bases first."""
    return list(store.walk(class_id, EdgeKind.INHERITS))


def descendants(store: GraphStore, class_id: str) -> list[str]:
    """Every class deriving from class_id, directly or indirectly."""
    return list(store.walk(class_id, EdgeKind.INHERITS, reverse=True))


def overriders(store: GraphStore, method_id: str) -> list[str]:
    """Every method overriding method_id anywhere below it in the lattice.

    `overrides` edges point at the nearest base virtual, so a method that
    overrides an override of X is found by following the edges backwards.
    """
    return store.overriders(method_id)


def overridden(store: GraphStore, method_id: str) -> list[str]:
    """The chain of base virtuals method_id overrides, nearest first."""
    return list(store.walk(method_id, EdgeKind.OVERRIDES))


def members(store: GraphStore, scope_id: str, kind: Optional[EntityKind] = None) -> list[str]:
    """Direct members of a scope, optionally of one kind."""
    children = store.children_of(scope_id)
    if kind is None:
        return children
    return [c for c in children if store.entity(c).kind is kind]


def find_by_name(store: GraphStore, name: str) -> list[str]:
    """Entities whose qualified name is, or ends with, the given name.

    "area" finds every area method; "Circle::area" only those inside a
    Circle; "::shapes::Circle" is anchored at the global namespace.
    """
    anchored = name.strip().startswith(SEPARATOR)
    wanted = split_name(name)
    if not wanted:
        return []
    found = []
    for entity in store.all_entities():
        qualified_name = entity.qualified_name
        if anchored:
            if qualified_name == wanted:
                found.append(entity.id)
        elif qualified_name[-len(wanted):] == wanted:
            found.append(entity.id)
    return found


def neighborhood(
    store: GraphStore,
    entity_ids: list[str],
    height: int = 1,
    depth: int = 1,
    kind: EdgeKind = EdgeKind.REFERENCES,
) -> set[tuple[str, str]]:
    """Subgraph of one edge kind around some entities.

    Traverses up (sources of incoming edges) and down (targets of outgoing
    edges) from the given entities.

    Args:
        entity_ids: Center entities.
        height: Levels UP (users of users of...).
        depth: Levels DOWN (used entities of used entities of...).
        kind: Edge kind to follow.

    Returns:
        Set of (source, target) pairs in the neighborhood.
    """
    edges: set[tuple[str, str]] = set()

    def is_external(entity_id: str) -> bool:
        entity = store.entity(entity_id)
        return entity is None or entity.kind is EntityKind.EXTERNAL

    def traverse_down(entity_id: str, remaining: int) -> None:
        if remaining <= 0:
            return
        for edge in store.edges_from(entity_id, kind):
            if (edge.source, edge.target) in edges:
                continue
            edges.add((edge.source, edge.target))
            # Don't traverse INTO external placeholders
            if not is_external(edge.target):
                traverse_down(edge.target, remaining - 1)

    def traverse_up(entity_id: str, remaining: int) -> None:
        if remaining <= 0:
            return
        for edge in store.edges_to(entity_id, kind):
            if (edge.source, edge.target) in edges:
                continue
            edges.add((edge.source, edge.target))
            traverse_up(edge.source, remaining - 1)

    for entity_id in entity_ids:
        traverse_down(entity_id, depth)
        traverse_up(entity_id, height)

    return edges


def call_chain(store: GraphStore, source_id: str, target_id: str) -> Optional[list[str]]:
    """Shortest path of references edges from source to target, inclusive.

    Returns None if target is not reachable.
    """
    if source_id == target_id:
        return [source_id]
    previous: dict[str, str] = {}
    queue = deque([source_id])
    seen = {source_id}
    while queue:
        node = queue.popleft()
        for edge in store.edges_from(node, EdgeKind.REFERENCES):
            if edge.target in seen:
                continue
            seen.add(edge.target)
            previous[edge.target] = node
            if edge.target == target_id:
                path = [target_id]
                while path[-1] != source_id:
                    path.append(previous[path[-1]])
                return list(reversed(path))
            queue.append(edge.target)
    return None


def inheritance_cycles(store: GraphStore) -> list[list[str]]:
    """Cycles in the inherits relation. Empty for any graph the store built.

    Iterative three-colour depth-first search; each cycle is reported once,
    starting from the entity where it was entered.
    """
    white, grey, black = 0, 1, 2
    colour = {entity_id: white for entity_id in store.entities}
    cycles: list[list[str]] = []

    for start in store.entities:
        if colour[start] != white:
            continue
        path = [start]
        stack = [iter(store.bases_of(start))]
        colour[start] = grey
        while stack:
            advanced = False
            for base_id in stack[-1]:
                state = colour.get(base_id, white)
                if state == grey:
                    cycles.append(path[path.index(base_id):])
                elif state == white:
                    colour[base_id] = grey
                    path.append(base_id)
                    stack.append(iter(store.bases_of(base_id)))
                    advanced = True
                    break
            if not advanced:
                colour[path.pop()] = black
                stack.pop()
    return cycles
