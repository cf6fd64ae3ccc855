# cppgraph/graph/__init__.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Code graph core.

Components:
- GraphStore: Entity arena with bidirectional, kind-indexed adjacency and atomic merge
- EntityInterner: Content-addressed ids, merging repeated declarations
- ScopeResolver: Scope stack and qualified/unqualified name lookup
- RelationshipBuilder: Derives contains/inherits/overrides/instantiates/references edges
- queries: Traversals over a built graph
"""

from .models import Edge, EdgeKind, Entity, EntityKind, QualifiedName, format_name, split_name
from .store import GraphStore
from .interner import EntityInterner, NormalizedDeclaration
from .scope import ScopeKind, ScopeResolver, Unresolved
from .relationships import RelationshipBuilder
from . import queries

__all__ = [
    # Core types
    "Entity",
    "EntityKind",
    "Edge",
    "EdgeKind",
    "QualifiedName",
    "format_name",
    "split_name",
    # Store
    "GraphStore",
    # Construction
    "EntityInterner",
    "NormalizedDeclaration",
    "ScopeKind",
    "ScopeResolver",
    "Unresolved",
    "RelationshipBuilder",
    # Traversal
    "queries",
]
