# cppgraph/report.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""Build report: the observable summary of one ingestion or merge."""

from dataclasses import dataclass, field, asdict
from typing import Any, Optional

from .errors import (
    InheritanceCycleDetected,
    MalformedDeclaration,
    SoftFailure,
    StoreContention,
)


@dataclass
class UnresolvedSymbol:
    """A name that did not bind after the retry pass."""

    name: str
    edge_kind: str  # "inherits" | "references" | "instantiates"
    source_id: str
    placeholder_id: str
    location: Optional[str] = None


@dataclass
class BuildIssue:
    """A soft failure recorded during the build."""

    kind: str  # MalformedDeclaration | InheritanceCycleDetected | StoreContention | ...
    message: str
    symbol: Optional[str] = None

    @classmethod
    def from_exception(cls, error: Exception) -> "BuildIssue":
        symbol = error.symbol if isinstance(error, SoftFailure) else None
        return cls(kind=type(error).__name__, message=str(error), symbol=symbol)


@dataclass
class GraphBuildReport:
    """Counts and soft failures of a build.

    `entities` and `edges` are totals in the store after the build;
    `merges` counts declarations folded into an existing entity.
    """

    entities: int = 0
    edges: int = 0
    merges: int = 0
    declarations: int = 0
    unresolved: list[UnresolvedSymbol] = field(default_factory=list)
    malformed: list[BuildIssue] = field(default_factory=list)
    cycles: list[BuildIssue] = field(default_factory=list)
    contentions: list[BuildIssue] = field(default_factory=list)
    unmatched_overrides: list[str] = field(default_factory=list)
    rejected_parents: list[BuildIssue] = field(default_factory=list)

    def record(self, error: Exception) -> None:
        """File a soft failure under its category."""
        issue = BuildIssue.from_exception(error)
        if isinstance(error, MalformedDeclaration):
            self.malformed.append(issue)
        elif isinstance(error, InheritanceCycleDetected):
            self.cycles.append(issue)
        elif isinstance(error, StoreContention):
            self.contentions.append(issue)
        else:
            raise TypeError(f"No report category for {type(error).__name__}")

    @property
    def unresolved_names(self) -> list[str]:
        return [u.name for u in self.unresolved]

    @property
    def ok(self) -> bool:
        """No soft failures at all."""
        return not (self.unresolved or self.malformed or self.cycles or self.contentions)

    def combine(self, other: "GraphBuildReport") -> "GraphBuildReport":
        """Sum two reports (counts of the later one win for totals)."""
        return GraphBuildReport(
            entities=other.entities,
            edges=other.edges,
            merges=self.merges + other.merges,
            declarations=self.declarations + other.declarations,
            unresolved=self.unresolved + other.unresolved,
            malformed=self.malformed + other.malformed,
            cycles=self.cycles + other.cycles,
            contentions=self.contentions + other.contentions,
            unmatched_overrides=self.unmatched_overrides + other.unmatched_overrides,
            rejected_parents=self.rejected_parents + other.rejected_parents,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
