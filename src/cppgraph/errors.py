# cppgraph/errors.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Error taxonomy for graph construction.

Soft failures are raised where they are detected and caught by the driver
or the store, which record them in the build report and carry on. Only
ResourceExhausted escapes an ingestion or merge.
"""

from typing import Optional


class CodeGraphError(Exception):
    """Base class for all cppgraph errors."""


class SoftFailure(CodeGraphError):
    """A recoverable input problem that is reported, never fatal."""

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message)
        self.symbol = symbol


class MalformedDeclaration(SoftFailure):
    """The front end supplied a name or signature that cannot be parsed."""

    def __init__(self, message: str, raw_text: str = "", symbol: Optional[str] = None):
        super().__init__(message, symbol)
        self.raw_text = raw_text


class UnresolvedReference(SoftFailure):
    """A name could not be bound to any known entity."""


class InheritanceCycleDetected(SoftFailure):
    """An inherits edge would close a cycle and was rejected."""

    def __init__(self, source: str, target: str):
        super().__init__(f"inherits {source} -> {target} would form a cycle", source)
        self.source = source
        self.target = target


class StoreContention(SoftFailure):
    """Two declarations share a structural key but disagree on their signature."""

    def __init__(self, message: str, existing_id: str, sibling_id: str):
        super().__init__(message, existing_id)
        self.existing_id = existing_id
        self.sibling_id = sibling_id


class ResourceExhausted(CodeGraphError):
    """Fatal: the current build cannot continue."""


class IdentitySpaceExhausted(ResourceExhausted):
    """Two different structural keys produced the same entity id."""


class StoreCapacityExceeded(ResourceExhausted):
    """The store reached its configured entity capacity."""
