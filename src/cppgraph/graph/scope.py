# cppgraph/graph/scope.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Scope stack and name resolution.

Resolves names as written in C++ source ("area", "Status::Pending",
"::shapes::Circle", "Container<int>::add") to entity ids, using:
- the active scope stack, innermost first
- base classes of enclosing class scopes
- using-directives and using-declarations active on the stack
- explicit qualification, descending member tables scope by scope
"""

from collections import defaultdict
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence

from .models import QualifiedName, SEPARATOR, split_name
from .store import GraphStore


class _Unresolved:
    """Result of a lookup that bound to nothing."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Unresolved"


Unresolved = _Unresolved()


class ScopeKind(str, Enum):
    NAMESPACE = "namespace"
    CLASS = "class"
    ENUM = "enum"
    TEMPLATE_PARAMETERS = "template-parameters"


@dataclass(frozen=True)
class Using:
    """A using-directive (`using namespace a::b;`) or declaration (`using a::b;`)."""

    target: str
    is_directive: bool


@dataclass(frozen=True)
class Scope:
    """One layer of the scope stack.

    Frames are immutable so a snapshot of the stack taken for a pending edge
    keeps seeing exactly the usings that were active at that point.
    """

    kind: ScopeKind
    qualified_name: QualifiedName
    entity_id: Optional[str] = None
    parameters: tuple[str, ...] = ()
    usings: tuple[Using, ...] = ()


Frames = tuple[Scope, ...]


def strip_template_args(name: str) -> str:
    """"Container<int>" -> "Container"."""
    return name.split("<", 1)[0].strip()


class ScopeResolver:
    """Maintains the scope stack during traversal and resolves names.

    Member tables map a scope's qualified name to the entity ids declared
    directly in it, by simple name. Overloads share a name and are kept in
    declaration order.
    """

    def __init__(self, store: GraphStore, root_id: str):
        """Initialize with the global namespace as the only active scope.

        Args:
            store: Graph store, used to read entity records and base classes.
            root_id: Id of the implicit global namespace entity.
        """
        self.store = store
        self.root_id = root_id
        self._members: dict[QualifiedName, dict[str, list[str]]] = defaultdict(dict)
        self._scope_ids: dict[QualifiedName, str] = {(): root_id}
        self._stack: list[Scope] = [Scope(ScopeKind.NAMESPACE, (), root_id)]

    # ------------------------------------------------------------------
    # Stack
    # ------------------------------------------------------------------

    def push(
        self,
        kind: ScopeKind,
        qualified_name: QualifiedName,
        entity_id: Optional[str] = None,
        parameters: Sequence[str] = (),
    ) -> Scope:
        scope = Scope(kind, qualified_name, entity_id, tuple(parameters))
        self._stack.append(scope)
        return scope

    def pop(self) -> Scope:
        if len(self._stack) == 1:
            raise RuntimeError("Cannot pop the global scope")
        return self._stack.pop()

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def current(self) -> Scope:
        return self._stack[-1]

    def snapshot(self) -> Frames:
        return tuple(self._stack)

    def enclosing(self, frames: Optional[Frames] = None) -> Scope:
        """Innermost frame that names an entity (template parameter layers skipped)."""
        for frame in reversed(frames or self._stack):
            if frame.kind is not ScopeKind.TEMPLATE_PARAMETERS:
                return frame
        return self._stack[0]

    def frames_for(self, qualified_name: QualifiedName) -> Frames:
        """A scope stack as if traversal were inside the given scope.

        Used after the pass, when the live stack is gone, to resolve names
        relative to an entity (e.g. covariant return types of a method).
        """
        frames = [self._stack[0]]
        for i in range(1, len(qualified_name) + 1):
            prefix = qualified_name[:i]
            kind = ScopeKind.NAMESPACE
            scope_id = self._scope_ids.get(prefix)
            if scope_id is not None:
                entity = self.store.entity(scope_id)
                if entity is not None and entity.is_class_like:
                    kind = ScopeKind.CLASS
            frames.append(Scope(kind, prefix, scope_id))
        return tuple(frames)

    def add_using(self, target: str, is_directive: bool) -> None:
        """Record a using-directive or using-declaration on the current scope."""
        top = self._stack[-1]
        self._stack[-1] = replace(top, usings=top.usings + (Using(target, is_directive),))

    # ------------------------------------------------------------------
    # Naming and registration
    # ------------------------------------------------------------------

    def qualify(
        self, simple_name: str, qualifier: Sequence[str] = ()
    ) -> tuple[QualifiedName, Optional[str]]:
        """Qualified name and contains-parent id for a declaration.

        Without a qualifier the name is nested in the innermost enclosing
        scope. With one (out-of-line definitions such as Circle::area) the
        qualifier is resolved from the current scope and names the parent.

        Returns:
            (qualified_name, parent_id). parent_id is None only when an
            explicit qualifier did not resolve.
        """
        if qualifier:
            parent_id = self.resolve(SEPARATOR.join(qualifier))
            if parent_id:
                parent = self.store.entity(parent_id)
                return parent.qualified_name + (simple_name,), parent_id
            return self.enclosing().qualified_name + tuple(qualifier) + (simple_name,), None

        scope = self.enclosing()
        return scope.qualified_name + (simple_name,), scope.entity_id

    def register(
        self,
        entity_id: str,
        qualified_name: QualifiedName,
        also_in: Optional[QualifiedName] = None,
        is_scope: bool = False,
    ) -> None:
        """Make an entity visible by its simple name in its scope.

        Args:
            entity_id: Entity to register.
            qualified_name: Its qualified name; the prefix is the scope.
            also_in: Second scope it is visible from (unscoped enumerators
                leak into the scope enclosing their enum).
            is_scope: The entity opens a scope (namespace, class, enum, template).
        """
        if not qualified_name:
            return
        name = qualified_name[-1]
        for scope_name in (qualified_name[:-1], also_in):
            if scope_name is None:
                continue
            ids = self._members[scope_name].setdefault(name, [])
            if entity_id not in ids:
                ids.append(entity_id)
        if is_scope:
            self._scope_ids.setdefault(qualified_name, entity_id)

    def members(self, scope_name: QualifiedName) -> dict[str, list[str]]:
        return dict(self._members.get(scope_name, {}))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(
        self,
        reference: str,
        frames: Optional[Frames] = None,
        signature: Optional[str] = None,
    ):
        """Resolve a name reference to an entity id.

        Args:
            reference: Name as written ("Pending", "Status::Pending",
                "::shapes::Circle", "Container<int>").
            frames: Scope stack to resolve from; defaults to the live stack.
                Pending edges pass the snapshot taken when they were queued.
            signature: Signature identity to pick one overload.

        Returns:
            Entity id, or Unresolved.
        """
        ids = self.resolve_all(reference, frames, signature)
        return ids[0] if ids else Unresolved

    def resolve_all(
        self,
        reference: str,
        frames: Optional[Frames] = None,
        signature: Optional[str] = None,
    ) -> list[str]:
        """Every entity the reference binds to (overloads), first declared first."""
        frames = frames or self.snapshot()
        text = reference.strip()
        if text == SEPARATOR:
            return [self.root_id]
        absolute = text.startswith(SEPARATOR)
        segments = split_name(text)
        if not segments:
            return []

        ids = self._lookup_qualified(segments, frames, absolute)
        if signature is not None:
            ids = [i for i in ids if self._signature_of(i) == signature]
        return ids

    def is_template_parameter(self, reference: str, frames: Optional[Frames] = None) -> bool:
        """True if the first segment of the reference names an active template parameter."""
        segments = split_name(reference)
        if not segments or reference.strip().startswith(SEPARATOR):
            return False
        head = strip_template_args(segments[0])
        for frame in reversed(frames or self._stack):
            if frame.kind is ScopeKind.TEMPLATE_PARAMETERS and head in frame.parameters:
                return True
            if self._members.get(frame.qualified_name, {}).get(head):
                return False
        return False

    def _signature_of(self, entity_id: str) -> Optional[str]:
        entity = self.store.entity(entity_id)
        if entity is None or entity.signature is None:
            return None
        return entity.signature.identity()

    def _lookup_qualified(
        self, segments: QualifiedName, frames: Frames, absolute: bool, use_usings: bool = True
    ) -> list[str]:
        if len(segments) == 1:
            if absolute:
                return list(self._members.get((), {}).get(segments[0], []))
            return self._lookup_name(segments[0], frames, use_usings)

        scopes = self._scope_candidates(segments[0], frames, absolute, use_usings)
        for segment in segments[1:-1]:
            next_scopes: list[QualifiedName] = []
            for scope_name in scopes:
                for name in (segment, strip_template_args(segment)):
                    for entity_id in self._member_lookup(scope_name, name):
                        entity = self.store.entity(entity_id)
                        if entity is not None and self._opens_scope(entity.qualified_name, entity_id):
                            next_scopes.append(entity.qualified_name)
                    if next_scopes:
                        break
            scopes = next_scopes
            if not scopes:
                return []

        for scope_name in scopes:
            ids = self._member_lookup(scope_name, segments[-1])
            if ids:
                return ids
        return []

    def _lookup_name(self, name: str, frames: Frames, use_usings: bool = True) -> list[str]:
        """Unqualified lookup: innermost scope outward, then usings."""
        for frame in reversed(frames):
            if frame.kind is ScopeKind.TEMPLATE_PARAMETERS:
                if name in frame.parameters:
                    return []
                continue
            ids = self._member_lookup(frame.qualified_name, name)
            if ids:
                return ids

        if not use_usings:
            return []

        for frame in reversed(frames):
            for using in reversed(frame.usings):
                target = split_name(using.target)
                absolute = using.target.strip().startswith(SEPARATOR)
                if using.is_directive:
                    for scope_name in self._scope_candidates_path(target, frames, absolute):
                        ids = self._members.get(scope_name, {}).get(name)
                        if ids:
                            return list(ids)
                elif target and strip_template_args(target[-1]) == name:
                    ids = self._lookup_qualified(target, frames, absolute, use_usings=False)
                    if ids:
                        return ids
        return []

    def _member_lookup(
        self, scope_name: QualifiedName, name: str, seen: Optional[set] = None
    ) -> list[str]:
        """Names declared in a scope, falling back to the scope's base classes."""
        ids = self._members.get(scope_name, {}).get(name)
        if ids:
            return list(ids)

        scope_id = self._scope_ids.get(scope_name)
        if scope_id is None:
            return []
        seen = seen if seen is not None else set()
        seen.add(scope_id)
        for base_id in self.store.bases_of(scope_id):
            if base_id in seen:
                continue
            base = self.store.entity(base_id)
            if base is None:
                continue
            ids = self._member_lookup(base.qualified_name, name, seen)
            if ids:
                return ids
        return []

    def _opens_scope(self, qualified_name: QualifiedName, entity_id: str) -> bool:
        if qualified_name in self._members or qualified_name in self._scope_ids:
            return True
        entity = self.store.entity(entity_id)
        return entity is not None and entity.kind.is_scope

    def _scope_candidates(
        self, segment: str, frames: Frames, absolute: bool, use_usings: bool = True
    ) -> list[QualifiedName]:
        """Scopes the first segment of a qualified name can denote."""
        candidates: list[QualifiedName] = []
        for name in dict.fromkeys((segment, strip_template_args(segment))):
            if absolute:
                if (name,) in self._members or (name,) in self._scope_ids:
                    candidates.append((name,))
                continue
            for entity_id in self._lookup_name(name, frames, use_usings):
                entity = self.store.entity(entity_id)
                if entity is not None and self._opens_scope(entity.qualified_name, entity_id):
                    candidates.append(entity.qualified_name)
            # scopes known only as the prefix of registered names
            for frame in reversed(frames):
                prefixed = frame.qualified_name + (name,)
                if prefixed in self._members and prefixed not in candidates:
                    candidates.append(prefixed)
            if candidates:
                break
        return candidates

    def _scope_candidates_path(
        self, path: QualifiedName, frames: Frames, absolute: bool
    ) -> list[QualifiedName]:
        """Scopes a full path can denote (target of a using-directive)."""
        if not path:
            return []
        scopes = self._scope_candidates(path[0], frames, absolute, use_usings=False)
        for segment in path[1:]:
            scopes = [s + (segment,) for s in scopes if s + (segment,) in self._members]
        return scopes
