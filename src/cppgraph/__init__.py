# cppgraph/__init__.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
C++ code graph construction.

Consumes the declaration stream of an external C++ front end and builds a
deduplicated graph of entities (namespaces, classes, methods, templates...)
and typed relationships between them.
"""

from .config import GraphConfig
from .declarations import Declaration, TranslationUnit, load_declarations
from .driver import IngestionDriver, ingest_translation_units
from .errors import (
    CodeGraphError,
    IdentitySpaceExhausted,
    InheritanceCycleDetected,
    MalformedDeclaration,
    ResourceExhausted,
    StoreCapacityExceeded,
    StoreContention,
    UnresolvedReference,
)
from .graph import EdgeKind, EntityKind, GraphStore, Unresolved
from .report import GraphBuildReport

__all__ = [
    "GraphConfig",
    "Declaration",
    "TranslationUnit",
    "load_declarations",
    "IngestionDriver",
    "ingest_translation_units",
    "GraphStore",
    "EntityKind",
    "EdgeKind",
    "Unresolved",
    "GraphBuildReport",
    # Errors
    "CodeGraphError",
    "MalformedDeclaration",
    "UnresolvedReference",
    "InheritanceCycleDetected",
    "StoreContention",
    "ResourceExhausted",
    "IdentitySpaceExhausted",
    "StoreCapacityExceeded",
]
