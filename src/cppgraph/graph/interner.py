# cppgraph/graph/interner.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Entity interning.

Maps normalised declarations to stable entity ids. Repeated declarations of
the same entity (forward declaration, in-class declaration, out-of-line
definition, the same header seen from several translation units) resolve
to one id whose `declarations` list collects every location.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..declarations import SignatureSpec, SourceLocation
from ..errors import MalformedDeclaration, StoreContention
from ..signature import Signature, parse_signature
from .models import Entity, EntityKind, QualifiedName, make_entity_id
from .store import GraphStore

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^~?[A-Za-z_][A-Za-z0-9_]*$")
_OPERATOR = re.compile(r"^operator\s*(\S.*)$")
ANONYMOUS = "(anonymous)"


def validate_name(name: str) -> str:
    """Return the simple name if it is an identifier, destructor or operator name.

    Raises:
        MalformedDeclaration: for anything else.
    """
    if _IDENTIFIER.match(name) or _OPERATOR.match(name) or name == ANONYMOUS:
        return name
    raise MalformedDeclaration(f"Invalid declared name: {name!r}", raw_text=name)


@dataclass
class NormalizedDeclaration:
    """A declaration after scope resolution, ready for interning."""

    kind: EntityKind
    qualified_name: QualifiedName
    location: Optional[SourceLocation] = None
    signature_spec: Optional[SignatureSpec] = None
    access: Optional[str] = None
    is_definition: bool = False
    template_params: tuple[str, ...] = ()
    templated_kind: Optional[EntityKind] = None
    template_args: tuple[str, ...] = ()
    raw_text: Optional[str] = None
    extra_specifiers: frozenset[str] = field(default_factory=frozenset)


class EntityInterner:
    """Assigns content-addressed ids and merges repeated declarations.

    Counters:
        merges: declarations folded into an existing entity
        created: entities allocated
    """

    def __init__(self, store: GraphStore, id_length: int = 16):
        self.store = store
        self.id_length = id_length
        self.merges = 0
        self.created = 0
        self.issues: list[Exception] = []
        # scope -> (type name -> entity id), for comparing return types
        self.type_binder: Callable[[QualifiedName], Callable[[str], Optional[str]]] = store.type_binder

    def global_root(self) -> str:
        """Id of the implicit global namespace, created on first use."""
        root = Entity(id="", kind=EntityKind.NAMESPACE, qualified_name=())
        return self.store.find_by_key(root.structural_key) or self._commit(root, count_merge=False)

    def intern(self, decl: NormalizedDeclaration) -> str:
        """Intern a declaration and return its entity id.

        A malformed name or signature downgrades the entity to kind=unknown
        with the raw text kept; the declaration is never dropped.
        """
        entity = self._build(decl)
        return self._commit(entity)

    def intern_external(self, qualified_name: QualifiedName) -> str:
        """Placeholder entity for a name that never resolved."""
        placeholder = Entity(id="", kind=EntityKind.EXTERNAL, qualified_name=qualified_name)
        return self._commit(placeholder, count_merge=False)

    def _build(self, decl: NormalizedDeclaration) -> Entity:
        entity = Entity(
            id="",
            kind=decl.kind,
            qualified_name=decl.qualified_name,
            declarations=[decl.location] if decl.location else [],
            access=decl.access,
            template_params=decl.template_params,
            templated_kind=decl.templated_kind,
            template_args=decl.template_args,
            is_defined=decl.is_definition,
            raw_text=decl.raw_text,
        )
        try:
            if decl.qualified_name and decl.kind is not EntityKind.INSTANTIATION_SITE:
                validate_name(decl.qualified_name[-1])
            if decl.signature_spec is not None:
                signature: Signature = parse_signature(decl.signature_spec)
                if decl.extra_specifiers:
                    signature = signature.with_specifiers(decl.extra_specifiers)
                entity.signature = signature
        except MalformedDeclaration as e:
            raw = e.raw_text
            if decl.signature_spec is not None:
                raw = decl.signature_spec.raw_text()
            logger.warning(f"Malformed declaration {entity.display_name} at {decl.location}: {e}")
            entity.kind = EntityKind.UNKNOWN
            entity.signature = None
            entity.raw_text = raw or entity.display_name
            e.symbol = entity.display_name
            self.issues.append(e)
        return entity

    def _commit(self, entity: Entity, count_merge: bool = True) -> str:
        key = entity.structural_key
        existing_id = self.store.find_by_key(key)
        if existing_id is not None:
            existing = self.store.entity(existing_id)
            bind = self.type_binder(entity.qualified_name[:-1])
            if existing.conflicts_with(entity, bind):
                sibling, merged = self.store.place_sibling(entity, bind)
                if merged:
                    # the same conflicting declaration seen again
                    if count_merge:
                        self.merges += 1
                    return sibling.id
                issue = StoreContention(
                    f"Conflicting declarations of {entity.display_name}: "
                    f"{existing.signature.text()} vs {entity.signature.text()}",
                    existing_id,
                    sibling.id,
                )
                logger.warning(str(issue))
                self.issues.append(issue)
                return sibling.id
            self.store.put_entity(entity)
            if count_merge:
                self.merges += 1
            logger.debug(f"Merged declaration into {existing.display_name} ({existing_id})")
            return existing_id

        entity.id = make_entity_id(key, self.id_length)
        stored = self.store.put_entity(entity)
        self.created += 1
        return stored.id
