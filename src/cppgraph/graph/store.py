# cppgraph/graph/store.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Graph store: entity arena plus bidirectional, kind-indexed adjacency.

The store keeps both forward (outgoing) and inverse (incoming) edge indices
so that "who inherits from X" or "who overrides X" are single lookups.
Edge sets are insertion-ordered dicts, which makes iteration deterministic
in first-seen order while keeping inserts idempotent.
"""

import logging
import threading
from collections import defaultdict
from typing import Callable, Iterable, Iterator, Optional

from ..errors import (
    IdentitySpaceExhausted,
    InheritanceCycleDetected,
    StoreCapacityExceeded,
    StoreContention,
)
from .models import (
    SEPARATOR,
    TYPE_KINDS,
    Edge,
    EdgeKind,
    Entity,
    QualifiedName,
    StructuralKey,
    make_entity_id,
    split_name,
)

logger = logging.getLogger(__name__)

AdjacencyIndex = dict[tuple[str, EdgeKind], dict[Edge, None]]


class GraphStore:
    """Entity records by id, edges by (entity id, edge kind) in both directions.

    Key: entity ids are content-addressed from structural keys, so two stores
    built independently from the same source hold identical ids and can be
    merged by key.
    """

    def __init__(self, max_entities: int = 5_000_000, id_length: int = 16):
        """Initialize an empty store.

        Args:
            max_entities: Capacity; put_entity beyond it raises StoreCapacityExceeded.
            id_length: Hex digits used when the store allocates sibling ids.
        """
        self.max_entities = max_entities
        self.id_length = id_length
        self.entities: dict[str, Entity] = {}
        self._by_key: dict[StructuralKey, str] = {}
        self._by_name: dict[QualifiedName, list[str]] = defaultdict(list)
        self.outgoing: AdjacencyIndex = defaultdict(dict)
        self.incoming: AdjacencyIndex = defaultdict(dict)
        self._edges: dict[Edge, None] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def put_entity(self, entity: Entity) -> Entity:
        """Insert an entity, or merge it into the record already holding its key.

        Returns:
            The stored record (the existing one after a merge).

        Raises:
            IdentitySpaceExhausted: if the id is taken by a different key.
            StoreCapacityExceeded: if the store is full.
        """
        key = entity.structural_key
        existing_id = self._by_key.get(key)
        if existing_id is not None:
            existing = self.entities[existing_id]
            existing.absorb(entity)
            return existing

        holder = self.entities.get(entity.id)
        if holder is not None:
            raise IdentitySpaceExhausted(
                f"Id {entity.id} already names {holder.structural_key}, cannot assign to {key}"
            )
        if len(self.entities) >= self.max_entities:
            raise StoreCapacityExceeded(f"Store capacity of {self.max_entities} entities reached")

        self.entities[entity.id] = entity
        self._by_key[key] = entity.id
        self._by_name[entity.qualified_name].append(entity.id)
        return entity

    def entity(self, entity_id: str) -> Optional[Entity]:
        return self.entities.get(entity_id)

    def find_by_key(self, key: StructuralKey) -> Optional[str]:
        return self._by_key.get(key)

    def all_entities(self) -> list[Entity]:
        return list(self.entities.values())

    def __len__(self) -> int:
        return len(self.entities)

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self.entities

    def remove_entity(self, entity_id: str) -> None:
        """Remove an entity and every edge touching it."""
        entity = self.entities.pop(entity_id)
        self._by_key.pop(entity.structural_key, None)
        self._by_name[entity.qualified_name].remove(entity_id)
        for edge in self.edges_from(entity_id) + self.edges_to(entity_id):
            self.remove_edge(edge)

    def bind_type(self, scope: QualifiedName, name: str) -> Optional[str]:
        """Id of the type a name written in `scope` denotes, or None.

        Tries the name nested in `scope` and then in each enclosing scope
        outward, as unqualified lookup of a type would.
        """
        segments = split_name(name)
        if not segments:
            return None
        if name.strip().startswith(SEPARATOR):
            prefixes = [()]
        else:
            prefixes = [scope[:i] for i in range(len(scope), -1, -1)]
        for prefix in prefixes:
            for entity_id in self._by_name.get(prefix + segments, []):
                if self.entities[entity_id].kind in TYPE_KINDS:
                    return entity_id
        return None

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def put_edge(self, edge: Edge) -> bool:
        """Add an edge. Inserting an identical edge again is a no-op.

        Maintains bidirectional consistency: adds to both outgoing and incoming.

        Returns:
            True if the edge was new, False if it was already present or was
            a second contains parent (rejected).

        Raises:
            InheritanceCycleDetected: if an inherits edge would close a cycle.
        """
        if edge in self._edges:
            return False

        if edge.kind is EdgeKind.CONTAINS:
            parent = self.parent_of(edge.target)
            if parent is not None:
                logger.warning(
                    f"Rejected second contains parent {edge.source} for {edge.target} (has {parent})"
                )
                return False

        if edge.kind is EdgeKind.INHERITS and self.reaches(edge.target, edge.source, EdgeKind.INHERITS):
            raise InheritanceCycleDetected(edge.source, edge.target)

        self._edges[edge] = None
        self.outgoing[(edge.source, edge.kind)][edge] = None
        self.incoming[(edge.target, edge.kind)][edge] = None
        return True

    def remove_edge(self, edge: Edge) -> bool:
        """Remove an edge from both indices. Returns False if it was absent."""
        if edge not in self._edges:
            return False
        del self._edges[edge]
        self.outgoing.get((edge.source, edge.kind), {}).pop(edge, None)
        self.incoming.get((edge.target, edge.kind), {}).pop(edge, None)
        return True

    def edges_from(self, entity_id: str, kind: Optional[EdgeKind] = None) -> list[Edge]:
        """Outgoing edges of an entity, optionally restricted to one kind."""
        if kind is not None:
            return list(self.outgoing.get((entity_id, kind), {}))
        return [e for k in EdgeKind for e in self.outgoing.get((entity_id, k), {})]

    def edges_to(self, entity_id: str, kind: Optional[EdgeKind] = None) -> list[Edge]:
        """Incoming edges of an entity, optionally restricted to one kind."""
        if kind is not None:
            return list(self.incoming.get((entity_id, kind), {}))
        return [e for k in EdgeKind for e in self.incoming.get((entity_id, k), {})]

    def all_edges(self) -> list[Edge]:
        return list(self._edges)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def has_edge(self, edge: Edge) -> bool:
        return edge in self._edges

    # ------------------------------------------------------------------
    # Structural helpers
    # ------------------------------------------------------------------

    def parent_of(self, entity_id: str) -> Optional[str]:
        """The single contains parent of an entity, if any."""
        for edge in self.incoming.get((entity_id, EdgeKind.CONTAINS), {}):
            return edge.source
        return None

    def children_of(self, entity_id: str) -> list[str]:
        return [e.target for e in self.outgoing.get((entity_id, EdgeKind.CONTAINS), {})]

    def bases_of(self, entity_id: str) -> list[str]:
        return [e.target for e in self.outgoing.get((entity_id, EdgeKind.INHERITS), {})]

    def walk(self, start: str, kind: EdgeKind, reverse: bool = False) -> Iterator[str]:
        """Breadth-first walk along one edge kind, excluding the start.

        Each entity is yielded once, nearest first, in first-seen order.
        """
        index = self.incoming if reverse else self.outgoing
        seen = {start}
        frontier = [start]
        while frontier:
            next_frontier = []
            for node in frontier:
                for edge in index.get((node, kind), {}):
                    other = edge.source if reverse else edge.target
                    if other in seen:
                        continue
                    seen.add(other)
                    next_frontier.append(other)
                    yield other
            frontier = next_frontier

    def reaches(self, start: str, goal: str, kind: EdgeKind) -> bool:
        """True if goal is start or reachable from start along kind edges."""
        if start == goal:
            return True
        return any(node == goal for node in self.walk(start, kind))

    def overriders(self, entity_id: str) -> list[str]:
        """Every method that overrides entity_id, directly or through other overrides."""
        return list(self.walk(entity_id, EdgeKind.OVERRIDES, reverse=True))

    # ------------------------------------------------------------------
    # Partial graph merge
    # ------------------------------------------------------------------

    def copy(self) -> "GraphStore":
        clone = GraphStore(self.max_entities, self.id_length)
        for entity in self.entities.values():
            copied = entity.copy()
            clone.entities[copied.id] = copied
            clone._by_key[copied.structural_key] = copied.id
            clone._by_name[copied.qualified_name].append(copied.id)
        for edge in self._edges:
            clone._edges[edge] = None
            clone.outgoing[(edge.source, edge.kind)][edge] = None
            clone.incoming[(edge.target, edge.kind)][edge] = None
        return clone

    def merge(self, partials: Iterable["GraphStore"]) -> list[Exception]:
        """Merge partial graphs into this store atomically.

        Takes the store lock, applies every partial to a working copy using
        the interning rule (match by structural key, union declarations,
        union edges idempotently) and swaps the copy in only when all of
        them applied. If a fatal error escapes, this store is unchanged.

        Returns:
            Soft failures met while merging (contentions, rejected cycles).
        """
        with self._lock:
            working = self.copy()
            issues: list[Exception] = []
            for partial in partials:
                issues.extend(working._apply(partial))
            self.entities = working.entities
            self._by_key = working._by_key
            self._by_name = working._by_name
            self.outgoing = working.outgoing
            self.incoming = working.incoming
            self._edges = working._edges
        logger.info(f"Merged partial graphs: {len(self.entities)} entities, {len(self._edges)} edges")
        return issues

    def _apply(self, partial: "GraphStore") -> list[Exception]:
        issues: list[Exception] = []
        ids: dict[str, str] = {}
        for entity in partial.entities.values():
            incoming = entity.copy()
            existing_id = self._by_key.get(incoming.structural_key)
            bind = self.type_binder(incoming.qualified_name[:-1])
            if existing_id is not None and self.entities[existing_id].conflicts_with(incoming, bind):
                sibling, merged = self.place_sibling(incoming, bind)
                ids[entity.id] = sibling.id
                if not merged:
                    issues.append(StoreContention(
                        f"Conflicting declarations of {incoming.display_name}: "
                        f"{self.entities[existing_id].signature.text()} vs {incoming.signature.text()}",
                        existing_id,
                        sibling.id,
                    ))
                continue
            ids[entity.id] = self.put_entity(incoming).id

        for edge in partial._edges:
            try:
                self.put_edge(edge.remap(ids))
            except InheritanceCycleDetected as e:
                logger.warning(f"Merge rejected edge: {e}")
                issues.append(e)
        return issues

    def type_binder(self, scope: QualifiedName) -> Callable[[str], Optional[str]]:
        """bind_type fixed to one scope, for comparing return types."""
        return lambda name: self.bind_type(scope, name)

    def place_sibling(
        self, entity: Entity, bind: Optional[Callable[[str], Optional[str]]] = None
    ) -> tuple[Entity, bool]:
        """Store an entity that conflicts with an existing key under the next
        free discriminator, giving it its own id.

        Returns:
            (stored record, True if it merged into a sibling placed earlier)
        """
        discriminator = entity.discriminator
        while True:
            discriminator += 1
            entity.discriminator = discriminator
            key = entity.structural_key
            existing_id = self._by_key.get(key)
            if existing_id is None:
                entity.id = make_entity_id(key, self.id_length)
                return self.put_entity(entity), False
            if not self.entities[existing_id].conflicts_with(entity, bind):
                return self.put_entity(entity), True
