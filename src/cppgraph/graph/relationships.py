# cppgraph/graph/relationships.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Relationship derivation.

Turns resolved entities into typed edges. Override detection is a static
rule evaluated over the inherits lattice, so "which methods override
Shape::area" becomes a graph query rather than a runtime question.
"""

import logging
from typing import Optional, Sequence

from ..declarations import Access, BaseSpecifier
from ..signature import matches_override, normalize_type
from ..errors import MalformedDeclaration
from .models import Edge, EdgeKind, EntityKind
from .scope import ScopeResolver
from .store import GraphStore

logger = logging.getLogger(__name__)


def instantiation_name(template_name: str, args: Sequence[str]) -> str:
    """Canonical site name: "Container" + ["int"] -> "Container<int>".

    Arguments are kept as opaque strings; only their spelling is normalised
    so that "std::string" and "std :: string" produce the same site.
    """
    normalized = []
    for arg in args:
        try:
            normalized.append(normalize_type(arg))
        except MalformedDeclaration:
            normalized.append(" ".join(arg.split()))
    return f"{template_name}<{', '.join(normalized)}>"


def _same_callable_name(derived: str, base: str) -> bool:
    # Destructors override each other despite different names
    if derived.startswith("~") and base.startswith("~"):
        return True
    return derived == base


class RelationshipBuilder:
    """Builds edges between resolved entities.

    The builder never writes to the store; the ingestion driver commits the
    edges it returns, so rejected edges (cycles, second parents) are handled
    in one place.
    """

    def __init__(self, store: GraphStore, resolver: ScopeResolver):
        self.store = store
        self.resolver = resolver

    def contains(self, parent_id: str, child_id: str) -> Edge:
        return Edge.create(parent_id, child_id, EdgeKind.CONTAINS)

    def inherits(
        self, derived_id: str, base_id: str, spec: BaseSpecifier, default_access: Access
    ) -> Edge:
        """Inheritance edge carrying access level and virtual-ness."""
        access = spec.access or default_access
        return Edge.create(
            derived_id,
            base_id,
            EdgeKind.INHERITS,
            access=access.value,
            virtual=str(spec.is_virtual).lower(),
        )

    def instantiates(self, site_id: str, template_id: str, args: Sequence[str]) -> Edge:
        return Edge.create(site_id, template_id, EdgeKind.INSTANTIATES, arguments=", ".join(args))

    def references(self, source_id: str, target_id: str) -> Edge:
        # No metadata: repeated uses of one target from one source collapse
        return Edge.create(source_id, target_id, EdgeKind.REFERENCES)

    # ------------------------------------------------------------------
    # Overrides
    # ------------------------------------------------------------------

    def find_override_target(self, method_id: str) -> Optional[str]:
        """Nearest base virtual method that method_id overrides.

        Walks the owning class's inherits chain breadth-first (direct bases
        first, in declaration order); the first base exposing a virtual
        method with the same name and a matching signature is the target.
        """
        method = self.store.entity(method_id)
        if method is None or not method.is_method_like or method.signature is None:
            return None
        if "static" in method.signature.specifiers:
            return None

        owner_id = self.store.parent_of(method_id)
        owner = self.store.entity(owner_id) if owner_id else None
        if owner is None or not owner.is_class_like:
            return None

        def is_derived_from(derived: str, base: str) -> bool:
            frames = self.resolver.frames_for(owner.qualified_name)
            derived_id = self.resolver.resolve(derived, frames)
            base_id = self.resolver.resolve(base, frames)
            if not derived_id or not base_id:
                return False
            return self.store.reaches(derived_id, base_id, EdgeKind.INHERITS)

        for base_id in self.store.walk(owner_id, EdgeKind.INHERITS):
            base = self.store.entity(base_id)
            if base is None or base.kind is EntityKind.EXTERNAL:
                continue
            for child_id in self.store.children_of(base_id):
                candidate = self.store.entity(child_id)
                if candidate is None or not candidate.is_method_like or candidate.signature is None:
                    continue
                if not _same_callable_name(method.name, candidate.name):
                    continue
                is_virtual = candidate.is_virtual or bool(
                    self.store.edges_from(child_id, EdgeKind.OVERRIDES)
                )
                if not is_virtual:
                    continue
                if matches_override(method.signature, candidate.signature, is_derived_from):
                    return child_id
        return None

    def overrides(self, method_id: str) -> Optional[Edge]:
        target = self.find_override_target(method_id)
        if target is None:
            return None
        return Edge.create(method_id, target, EdgeKind.OVERRIDES)

    # ------------------------------------------------------------------
    # Abstractness
    # ------------------------------------------------------------------

    def is_abstract(self, class_id: str) -> bool:
        """True if some pure virtual method of the class or an ancestor is
        left without a non-pure overrider in the class or its ancestors."""
        lineage = [class_id, *self.store.walk(class_id, EdgeKind.INHERITS)]
        methods = [
            child_id
            for owner in lineage
            for child_id in self.store.children_of(owner)
            if self.store.entity(child_id).is_method_like
        ]
        pure = [m for m in methods if self.store.entity(m).is_pure]
        concrete = [m for m in methods if not self.store.entity(m).is_pure]
        for pure_id in pure:
            if not any(self.store.reaches(m, pure_id, EdgeKind.OVERRIDES) for m in concrete):
                logger.debug(f"{self.store.entity(class_id).display_name} is abstract via {pure_id}")
                return True
        return False
