# cppgraph/driver.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Ingestion driver.

Builds the graph from a declaration stream in two passes:
- Pass 1: pre-order traversal. Push/pop scopes, intern every declaration,
  emit contains edges, and emit inherits/overrides/instantiates/references
  edges whose targets already resolve. Everything else is queued.
- Pass 2: retry every pending edge once, in a fixed order (inherits first,
  since member lookup and override matching walk the inherits lattice).
  Names that still do not bind are redirected to external placeholders and
  reported. Instantiation sites are created once their template binds, so
  a site is keyed on the template rather than on how it was spelled.

Afterwards `is_abstract` is recomputed for every class-like entity.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from .config import GraphConfig
from .declarations import Access, BaseSpecifier, DeclKind, Declaration, NameUse, SourceLocation, TranslationUnit
from .errors import InheritanceCycleDetected, ResourceExhausted, UnresolvedReference
from .graph.interner import ANONYMOUS, EntityInterner, NormalizedDeclaration
from .graph.models import (
    SEPARATOR,
    TYPE_KINDS,
    Edge,
    EdgeKind,
    EntityKind,
    QualifiedName,
    format_name,
    split_name,
)
from .graph.relationships import RelationshipBuilder, instantiation_name
from .graph.scope import Frames, Scope, ScopeKind, ScopeResolver
from .graph.store import GraphStore
from .report import BuildIssue, GraphBuildReport, UnresolvedSymbol

logger = logging.getLogger(__name__)

_ENTITY_KINDS = {
    DeclKind.NAMESPACE: EntityKind.NAMESPACE,
    DeclKind.CLASS: EntityKind.CLASS,
    DeclKind.STRUCT: EntityKind.STRUCT,
    DeclKind.ENUM: EntityKind.ENUM,
    DeclKind.ENUM_CLASS: EntityKind.ENUM_CLASS,
    DeclKind.FUNCTION: EntityKind.FUNCTION,
    DeclKind.METHOD: EntityKind.METHOD,
    DeclKind.FIELD: EntityKind.FIELD,
    DeclKind.VARIABLE: EntityKind.VARIABLE,
    DeclKind.ENUMERATOR: EntityKind.ENUMERATOR,
}

_SCOPE_KINDS = {
    DeclKind.NAMESPACE: ScopeKind.NAMESPACE,
    DeclKind.CLASS: ScopeKind.CLASS,
    DeclKind.STRUCT: ScopeKind.CLASS,
    DeclKind.ENUM: ScopeKind.ENUM,
    DeclKind.ENUM_CLASS: ScopeKind.ENUM,
}

# Retry order of the pending queue
_RETRY_ORDER = (
    EdgeKind.INHERITS,
    EdgeKind.INSTANTIATES,
    EdgeKind.REFERENCES,
    EdgeKind.OVERRIDES,
)

Declarations = Union[TranslationUnit, Iterable[Declaration]]


@dataclass
class PendingEdge:
    """An edge whose target did not resolve during the traversal.

    `frames` is the scope stack at the point the edge was queued, so the
    retry resolves the name exactly as the traversal would have.
    """

    kind: EdgeKind
    source_id: str
    name: str
    frames: Frames
    location: Optional[SourceLocation] = None
    base: Optional[BaseSpecifier] = None
    default_access: Access = Access.PUBLIC
    template_args: tuple[str, ...] = ()
    marked: bool = False


class IngestionDriver:
    """Orchestrates one build: traversal, interning, edge derivation, retry.

    A driver may ingest several streams into the same store (a header, then
    the translation units including it). Scope member tables persist between
    calls, so later streams resolve against entities declared earlier.
    """

    def __init__(self, store: Optional[GraphStore] = None, config: Optional[GraphConfig] = None):
        """Initialize the driver.

        Args:
            store: Store to build into. A new one sized from config if None.
                A non-empty store is indexed so its entities resolve by name.
            config: Graph configuration. Defaults to GraphConfig().
        """
        self.config = config or GraphConfig()
        self.store = store if store is not None else GraphStore(
            max_entities=self.config.max_entities, id_length=self.config.id_length
        )
        self.interner = EntityInterner(self.store, self.config.id_length)
        self.root_id = self.interner.global_root()
        self.resolver = ScopeResolver(self.store, self.root_id)
        self.builder = RelationshipBuilder(self.store, self.resolver)
        self.interner.type_binder = self._type_binder
        self._pending: list[PendingEdge] = []
        self._report = GraphBuildReport()
        if len(self.store) > 1:
            self._index_store()

    def ingest(self, declarations: Declarations) -> GraphBuildReport:
        """Ingest a declaration stream and return its build report.

        Raises:
            ResourceExhausted: identity space or store capacity ran out.
                The graph built so far is left as is.
        """
        if isinstance(declarations, TranslationUnit):
            logger.info(f"Ingesting {declarations.file}")
            declarations = declarations.declarations

        self._report = report = GraphBuildReport()
        self._pending = []
        merges_before = self.interner.merges
        issues_before = len(self.interner.issues)

        try:
            for decl in declarations:
                self._visit(decl)
            logger.info(
                f"Pass 1 complete: {report.declarations} declarations, "
                f"{len(self._pending)} pending edges"
            )
            self._retry_pending()
            logger.info(f"Pass 2 complete: {len(report.unresolved)} unresolved")
        except ResourceExhausted as e:
            logger.error(f"Build aborted: {e}")
            raise

        self.finalize()

        for issue in self.interner.issues[issues_before:]:
            report.record(issue)
        report.entities = len(self.store)
        report.edges = self.store.edge_count
        report.merges = self.interner.merges - merges_before
        logger.info(
            f"Build complete: {report.entities} entities, {report.edges} edges, "
            f"{report.merges} merges"
        )
        return report

    def finalize(self) -> None:
        """Recompute is_abstract for every class-like entity."""
        for entity in self.store.all_entities():
            if entity.is_class_like:
                entity.is_abstract = self.builder.is_abstract(entity.id)

    def relink_externals(self, report: GraphBuildReport) -> int:
        """Rebind the unresolved occurrences of a report against this store.

        A partial graph cannot see entities declared in other translation
        units, so after a merge some placeholders name real entities. Each
        occurrence whose name now resolves from its source's scope has its
        edge moved from the placeholder to the entity, placeholders left
        without users are removed, and override matching runs again for
        methods still missing a target.

        Returns:
            The number of occurrences rebound. They leave report.unresolved.
        """
        self._report = report
        remaining: list[UnresolvedSymbol] = []
        relinked = 0
        for symbol in report.unresolved:
            source = self.store.entity(symbol.source_id)
            target_id = None
            if source is not None and symbol.placeholder_id in self.store:
                frames = self.resolver.frames_for(source.qualified_name)
                target_id = self.resolver.resolve(symbol.name, frames)
            if not target_id:
                remaining.append(symbol)
                continue
            self._move_edges(symbol, target_id)
            relinked += 1
        report.unresolved = remaining
        if not relinked:
            return 0

        for entity in self.store.all_entities():
            if entity.kind is EntityKind.EXTERNAL and all(
                e.kind is EdgeKind.CONTAINS for e in self.store.edges_to(entity.id)
            ):
                self.store.remove_entity(entity.id)
        self._rematch_overrides(report)
        logger.info(f"Relinked {relinked} unresolved occurrences after merge")
        return relinked

    def _move_edges(self, symbol: UnresolvedSymbol, target_id: str) -> None:
        kind = EdgeKind(symbol.edge_kind)
        ids = {symbol.placeholder_id: target_id}
        if kind is EdgeKind.INSTANTIATES:
            # the edge leaves the user's site, not the user
            sources = [
                e.source for e in self.store.edges_to(symbol.placeholder_id, kind)
                if self.store.has_edge(self.builder.references(symbol.source_id, e.source))
            ]
        else:
            sources = [symbol.source_id]
        for source_id in sources:
            for edge in self.store.edges_from(source_id, kind):
                if edge.target == symbol.placeholder_id:
                    self.store.remove_edge(edge)
                    self._commit(edge.remap(ids))

    def _rematch_overrides(self, report: GraphBuildReport) -> None:
        for entity in self.store.all_entities():
            if not entity.is_method_like or entity.signature is None:
                continue
            if self.store.edges_from(entity.id, EdgeKind.OVERRIDES):
                continue
            if not entity.signature.is_override and not self.config.match_unmarked_overrides:
                continue
            edge = self.builder.overrides(entity.id)
            if edge is None:
                continue
            self._commit(edge)
            report.unmatched_overrides = [
                name for name in report.unmatched_overrides if name != entity.display_name
            ]

    def _type_binder(self, scope: QualifiedName) -> Callable[[str], Optional[str]]:
        """Bind type names as written inside `scope` to type entities."""

        def bind(name: str) -> Optional[str]:
            frames = self.resolver.frames_for(scope)
            for entity_id in self.resolver.resolve_all(name, frames):
                if self.store.entity(entity_id).kind in TYPE_KINDS:
                    return entity_id
            return self.store.bind_type(scope, name)

        return bind

    # ------------------------------------------------------------------
    # Pass 1: traversal
    # ------------------------------------------------------------------

    def _visit(self, decl: Declaration) -> None:
        self._report.declarations += 1
        if decl.kind is DeclKind.USING:
            self.resolver.add_using(decl.name, decl.is_directive)
            return

        kind = _ENTITY_KINDS[decl.kind]
        name = decl.name or ANONYMOUS
        qualified_name, parent_id = self.resolver.qualify(name, decl.scope)
        if parent_id is None:
            parent_id = self._implicit_scope(qualified_name[:-1])
        parent = self.store.entity(parent_id)

        # Functions declared inside a class are methods
        if kind is EntityKind.FUNCTION and parent.is_class_like:
            kind = EntityKind.METHOD

        templated_kind = None
        if decl.is_template:
            templated_kind, kind = kind, EntityKind.TEMPLATE

        access = decl.access.value if decl.access else None
        if access is None and parent.is_class_like and not decl.scope:
            access = self._default_access(parent.kind, parent.templated_kind).value

        entity_id = self.interner.intern(NormalizedDeclaration(
            kind=kind,
            qualified_name=qualified_name,
            location=decl.location,
            signature_spec=decl.signature,
            access=access,
            is_definition=decl.is_definition,
            template_params=tuple(decl.template_params),
            templated_kind=templated_kind,
        ))
        self._commit(self.builder.contains(parent_id, entity_id))
        entity = self.store.entity(entity_id)

        # Unscoped enumerators are also visible next to their enum
        also_in = None
        if decl.kind is DeclKind.ENUMERATOR and parent.kind is EntityKind.ENUM:
            also_in = parent.qualified_name[:-1]
        self.resolver.register(entity_id, qualified_name, also_in=also_in, is_scope=kind.is_scope)
        logger.debug(f"Declared {kind.value} {entity.display_name} ({entity_id})")

        pushed = 0
        if decl.is_template:
            self.resolver.push(ScopeKind.TEMPLATE_PARAMETERS, qualified_name, parameters=decl.template_params)
            pushed += 1

        frames = self.resolver.snapshot()
        if decl.scope and parent.kind.is_scope and parent_id != self.root_id:
            # Out-of-line definition: the body sees the members of its owner
            frames = frames + (Scope(self._scope_kind_of(parent.kind), parent.qualified_name, parent_id),)

        if decl.bases:
            default_access = self._default_access(kind, templated_kind)
            for spec in decl.bases:
                self._link_base(entity_id, spec, default_access, frames, decl.location)

        if entity.is_method_like and entity.signature is not None:
            self._link_override(entity_id, entity.signature.is_override, frames, decl.location)

        for use in decl.uses:
            self._link_use(entity_id, use, frames, decl.location)

        scope_kind = _SCOPE_KINDS.get(decl.kind)
        if scope_kind is not None:
            self.resolver.push(scope_kind, qualified_name, entity_id)
            pushed += 1
            for child in decl.children:
                self._visit(child)
        elif decl.children:
            logger.debug(f"Ignoring {len(decl.children)} nested declarations of {entity.display_name}")

        for _ in range(pushed):
            self.resolver.pop()

    def _implicit_scope(self, qualified_name: QualifiedName) -> str:
        """Namespace entity for a qualifier that names nothing declared.

        Out-of-line definitions whose qualifier never resolved still need a
        contains parent; the qualifier becomes a chain of namespaces.
        """
        if not qualified_name:
            return self.root_id
        parent_id = self._implicit_scope(qualified_name[:-1])
        scope_id = self.resolver.resolve(SEPARATOR + format_name(qualified_name))
        if scope_id and self.store.entity(scope_id).kind.is_scope:
            return scope_id
        scope_id = self.interner.intern(NormalizedDeclaration(EntityKind.NAMESPACE, qualified_name))
        self._commit(self.builder.contains(parent_id, scope_id))
        self.resolver.register(scope_id, qualified_name, is_scope=True)
        logger.debug(f"Implicit namespace {format_name(qualified_name)} for unresolved qualifier")
        return scope_id

    @staticmethod
    def _default_access(kind: EntityKind, templated_kind: Optional[EntityKind] = None) -> Access:
        if EntityKind.STRUCT in (kind, templated_kind):
            return Access.PUBLIC
        if EntityKind.CLASS in (kind, templated_kind):
            return Access.PRIVATE
        return Access.PUBLIC

    @staticmethod
    def _scope_kind_of(kind: EntityKind) -> ScopeKind:
        if kind in (EntityKind.ENUM, EntityKind.ENUM_CLASS):
            return ScopeKind.ENUM
        if kind is EntityKind.NAMESPACE:
            return ScopeKind.NAMESPACE
        return ScopeKind.CLASS

    # ------------------------------------------------------------------
    # Edge derivation
    # ------------------------------------------------------------------

    def _link_base(
        self,
        derived_id: str,
        spec: BaseSpecifier,
        default_access: Access,
        frames: Frames,
        location: Optional[SourceLocation],
    ) -> None:
        if self.resolver.is_template_parameter(spec.name, frames):
            logger.debug(f"Skipping dependent base {spec.name}")
            return
        base_id = self.resolver.resolve(spec.name, frames)
        if base_id:
            self._commit(self.builder.inherits(derived_id, base_id, spec, default_access))
            return
        self._pending.append(PendingEdge(
            EdgeKind.INHERITS, derived_id, spec.name, frames, location,
            base=spec, default_access=default_access,
        ))

    def _link_override(
        self, method_id: str, marked: bool, frames: Frames, location: Optional[SourceLocation]
    ) -> None:
        if not marked and not self.config.match_unmarked_overrides:
            return
        edge = self.builder.overrides(method_id)
        if edge is not None:
            self._commit(edge)
        else:
            self._pending.append(PendingEdge(
                EdgeKind.OVERRIDES, method_id, self.store.entity(method_id).name, frames, location,
                marked=marked,
            ))

    def _link_use(
        self, user_id: str, use: NameUse, frames: Frames, location: Optional[SourceLocation]
    ) -> None:
        location = use.location or location
        if use.template_args is not None:
            self._link_instantiation(user_id, use, frames, location)
            return
        if self.resolver.is_template_parameter(use.name, frames):
            return
        target_id = self.resolver.resolve(use.name, frames)
        if target_id:
            self._commit(self.builder.references(user_id, target_id))
            return
        self._pending.append(PendingEdge(EdgeKind.REFERENCES, user_id, use.name, frames, location))

    def _link_instantiation(
        self, user_id: str, use: NameUse, frames: Frames, location: Optional[SourceLocation]
    ) -> None:
        template_name = use.name.strip().lstrip(":").strip()
        args = tuple(use.template_args)
        template_id = self.resolver.resolve(template_name, frames)
        if template_id:
            self._place_site(user_id, template_id, template_name, args, frames, location)
            return
        # the site is keyed on its template, so it waits until that binds
        self._pending.append(PendingEdge(
            EdgeKind.INSTANTIATES, user_id, template_name, frames, location, template_args=args,
        ))

    def _place_site(
        self,
        user_id: str,
        template_id: str,
        template_name: str,
        args: tuple[str, ...],
        frames: Frames,
        location: Optional[SourceLocation],
    ) -> str:
        """Instantiation site in the innermost named scope of the use.

        Uses of one template with the same arguments in one scope share a
        site, however the template name was qualified.
        """
        scope = self.resolver.enclosing(frames)
        site_name = instantiation_name(split_name(template_name)[-1], args)
        scope_id = scope.entity_id or self._implicit_scope(scope.qualified_name)

        site_id = self.interner.intern(NormalizedDeclaration(
            kind=EntityKind.INSTANTIATION_SITE,
            qualified_name=scope.qualified_name + (site_name,),
            location=location,
            template_args=args,
            raw_text=self.store.entity(template_id).display_name,
        ))
        self._commit(self.builder.contains(scope_id, site_id))
        self.resolver.register(site_id, scope.qualified_name + (site_name,))
        if site_id != user_id:
            self._commit(self.builder.references(user_id, site_id))
        self._commit(self.builder.instantiates(site_id, template_id, args))
        return site_id

    def _commit(self, edge: Edge) -> bool:
        """Insert an edge, recording rejections in the report."""
        if edge.kind is EdgeKind.CONTAINS:
            parent = self.store.parent_of(edge.target)
            if parent is not None and parent != edge.source:
                target = self.store.entity(edge.target)
                message = (
                    f"{target.display_name} already contained by "
                    f"{self.store.entity(parent).display_name}"
                )
                logger.warning(f"Rejected contains parent: {message}")
                self._report.rejected_parents.append(
                    BuildIssue("RejectedContainsParent", message, target.display_name)
                )
                return False
        try:
            return self.store.put_edge(edge)
        except InheritanceCycleDetected as e:
            source = self.store.entity(e.source)
            target = self.store.entity(e.target)
            e.symbol = source.display_name
            logger.warning(f"Rejected inheritance cycle: {source.display_name} -> {target.display_name}")
            self._report.record(e)
            return False

    # ------------------------------------------------------------------
    # Pass 2: pending retry
    # ------------------------------------------------------------------

    def _retry_pending(self) -> None:
        pending = sorted(self._pending, key=lambda p: _RETRY_ORDER.index(p.kind))
        self._pending = []

        for item in pending:
            if item.kind is EdgeKind.OVERRIDES:
                self._retry_override(item)
                continue
            try:
                target_id = self._bind(item)
            except UnresolvedReference as e:
                target_id = self.interner.intern_external(split_name(item.name) or (item.name,))
                self._commit(self.builder.contains(self.root_id, target_id))
                self._report.unresolved.append(UnresolvedSymbol(
                    name=item.name,
                    edge_kind=item.kind.value,
                    source_id=item.source_id,
                    placeholder_id=target_id,
                    location=str(item.location) if item.location else None,
                ))
                logger.warning(f"{e}; linked to external placeholder {target_id}")

            if item.kind is EdgeKind.INSTANTIATES:
                self._place_site(
                    item.source_id, target_id, item.name, item.template_args, item.frames, item.location
                )
                continue
            if item.kind is EdgeKind.INHERITS:
                edge = self.builder.inherits(item.source_id, target_id, item.base, item.default_access)
            else:
                edge = self.builder.references(item.source_id, target_id)
            self._commit(edge)

    def _bind(self, item: PendingEdge) -> str:
        target_id = self.resolver.resolve(item.name, item.frames)
        if not target_id:
            source = self.store.entity(item.source_id)
            raise UnresolvedReference(
                f"Unresolved {item.kind.value} target {item.name!r} from {source.display_name}",
                item.name,
            )
        return target_id

    def _retry_override(self, item: PendingEdge) -> None:
        edge = self.builder.overrides(item.source_id)
        if edge is not None:
            self._commit(edge)
            return
        if item.marked and self.config.report_unmatched_overrides:
            name = self.store.entity(item.source_id).display_name
            if name not in self._report.unmatched_overrides:
                self._report.unmatched_overrides.append(name)
            logger.warning(f"No base virtual found for {name} marked override")

    # ------------------------------------------------------------------
    # Existing stores
    # ------------------------------------------------------------------

    def _index_store(self) -> None:
        """Register the entities of a pre-built store with the resolver."""
        for entity in self.store.all_entities():
            if entity.id == self.root_id or entity.kind is EntityKind.EXTERNAL:
                continue
            also_in = None
            parent_id = self.store.parent_of(entity.id)
            parent = self.store.entity(parent_id) if parent_id else None
            if entity.kind is EntityKind.ENUMERATOR and parent is not None and parent.kind is EntityKind.ENUM:
                also_in = parent.qualified_name[:-1]
            self.resolver.register(
                entity.id, entity.qualified_name, also_in=also_in, is_scope=entity.kind.is_scope
            )
        logger.debug(f"Indexed {len(self.store)} existing entities")


def ingest_translation_units(
    units: Iterable[Declarations],
    store: Optional[GraphStore] = None,
    config: Optional[GraphConfig] = None,
) -> tuple[GraphStore, GraphBuildReport]:
    """Ingest independent translation units in parallel and merge the results.

    Each unit is built into its own local store by its own driver on a
    thread pool; the partial graphs are then merged into `store` under its
    lock in one atomic step.

    Returns:
        (store, combined report)
    """
    config = config or GraphConfig()
    if store is None:
        store = GraphStore(max_entities=config.max_entities, id_length=config.id_length)

    def build_partial(unit: Declarations) -> tuple[GraphStore, GraphBuildReport]:
        driver = IngestionDriver(config=config)
        return driver.store, driver.ingest(unit)

    with ThreadPoolExecutor(max_workers=config.parallel_workers) as pool:
        results = list(pool.map(build_partial, units))
    logger.info(f"Built {len(results)} partial graphs")

    report = GraphBuildReport()
    for _, partial_report in results:
        report = report.combine(partial_report)

    for issue in store.merge([partial for partial, _ in results]):
        report.record(issue)

    # Names and overriders may be declared in another unit
    merged = IngestionDriver(store=store, config=config)
    merged.relink_externals(report)
    merged.finalize()
    report.entities = len(store)
    report.edges = store.edge_count
    return store, report
