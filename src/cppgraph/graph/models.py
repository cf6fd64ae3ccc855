# cppgraph/graph/models.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Data models for the C++ code graph.

Entities live in an arena keyed by opaque string ids; edges are id pairs.
Records never point at each other directly, which keeps merging two graphs
a matter of matching keys and re-inserting id pairs.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..declarations import SourceLocation
from ..signature import Signature, types_match

SEPARATOR = "::"

# Qualified name: scope segments outer-to-inner, then the simple name.
# - ("shapes", "Circle", "area")
# - () for the implicit global namespace
QualifiedName = tuple[str, ...]


class EntityKind(str, Enum):
    NAMESPACE = "namespace"
    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"
    ENUM_CLASS = "enum-class"
    ENUMERATOR = "enumerator"
    FUNCTION = "function"
    METHOD = "method"
    FIELD = "field"
    VARIABLE = "variable"
    TEMPLATE = "template"
    INSTANTIATION_SITE = "template-instantiation-site"
    UNKNOWN = "unknown"
    EXTERNAL = "external"

    @property
    def key_kind(self) -> "EntityKind":
        """Kind used in the structural key. struct and class are one class-key."""
        if self is EntityKind.STRUCT:
            return EntityKind.CLASS
        return self

    @property
    def is_scope(self) -> bool:
        return self in SCOPE_KINDS

    @property
    def is_callable(self) -> bool:
        return self in (EntityKind.FUNCTION, EntityKind.METHOD)


SCOPE_KINDS = frozenset({
    EntityKind.NAMESPACE,
    EntityKind.CLASS,
    EntityKind.STRUCT,
    EntityKind.ENUM,
    EntityKind.ENUM_CLASS,
    EntityKind.TEMPLATE,
})

CLASS_LIKE_KINDS = frozenset({EntityKind.CLASS, EntityKind.STRUCT})

# Kinds a type name can bind to
TYPE_KINDS = CLASS_LIKE_KINDS | {EntityKind.ENUM, EntityKind.ENUM_CLASS, EntityKind.TEMPLATE}


class EdgeKind(str, Enum):
    CONTAINS = "contains"
    INHERITS = "inherits"
    OVERRIDES = "overrides"
    INSTANTIATES = "instantiates"
    REFERENCES = "references"


# Structural key: (qualified_name, key kind, signature identity or raw text, discriminator)
StructuralKey = tuple[QualifiedName, str, Optional[str], int]


def format_name(qualified_name: QualifiedName) -> str:
    """Render a qualified name with the fixed separator."""
    return SEPARATOR.join(qualified_name)


def split_name(text: str) -> QualifiedName:
    """Split a rendered name back into segments.

    Separators inside template argument lists are not split:
    "std::map<a::b, c>::iterator" -> ("std", "map<a::b, c>", "iterator")
    A leading "::" (explicit global qualification) is dropped.
    """
    segments: list[str] = []
    depth = 0
    current = ""
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if depth == 0 and text.startswith(SEPARATOR, i):
            segments.append(current)
            current = ""
            i += len(SEPARATOR)
            continue
        current += ch
        i += 1
    segments.append(current)
    return tuple(s.strip() for s in segments if s.strip())


def key_text(key: StructuralKey) -> str:
    qualified_name, kind, signature, discriminator = key
    text = f"{kind}|{format_name(qualified_name)}|{signature or ''}"
    if discriminator:
        text += f"#{discriminator}"
    return text


def make_entity_id(key: StructuralKey, length: int = 16) -> str:
    """Content-addressed id: the same key always yields the same id."""
    return hashlib.sha256(key_text(key).encode()).hexdigest()[:length]


@dataclass
class Entity:
    """A uniquely identified declared construct.

    `declarations` grows while a build is ingested (every declaration or
    definition of the entity adds its location); after the build the record
    is treated as a value.
    """

    id: str
    kind: EntityKind
    qualified_name: QualifiedName
    signature: Optional[Signature] = None
    declarations: list[SourceLocation] = field(default_factory=list)
    is_abstract: bool = False
    access: Optional[str] = None
    raw_text: Optional[str] = None  # unknown: declaration text; site: qualified name of the template
    template_params: tuple[str, ...] = ()
    templated_kind: Optional[EntityKind] = None  # for kind=template: class or function
    template_args: tuple[str, ...] = ()  # for instantiation sites
    is_defined: bool = False
    discriminator: int = 0

    @property
    def name(self) -> str:
        """Simple (last segment) name."""
        return self.qualified_name[-1] if self.qualified_name else ""

    @property
    def display_name(self) -> str:
        return format_name(self.qualified_name) or SEPARATOR

    @property
    def is_virtual(self) -> bool:
        return self.signature is not None and self.signature.is_virtual

    @property
    def is_pure(self) -> bool:
        return self.signature is not None and self.signature.is_pure

    @property
    def is_class_like(self) -> bool:
        """Classes, structs and class templates."""
        if self.kind in CLASS_LIKE_KINDS:
            return True
        return self.kind is EntityKind.TEMPLATE and self.templated_kind in CLASS_LIKE_KINDS

    @property
    def is_method_like(self) -> bool:
        """Methods, and member function templates."""
        if self.kind is EntityKind.METHOD:
            return True
        return self.kind is EntityKind.TEMPLATE and self.templated_kind is EntityKind.METHOD

    @property
    def structural_key(self) -> StructuralKey:
        if self.kind in (EntityKind.UNKNOWN, EntityKind.INSTANTIATION_SITE):
            sig = self.raw_text
        elif self.signature is not None:
            sig = self.signature.identity()
        else:
            sig = None
        return (self.qualified_name, self.kind.key_kind.value, sig, self.discriminator)

    def conflicts_with(self, other: "Entity", bind: Optional[Callable[[str], Optional[str]]] = None) -> bool:
        """Same structural key but incompatible signature (return types differ).

        `bind` maps a type name written in this entity's scope to an entity
        id, so "Point" and "shapes::Point" are one type when both bind to it.
        """
        if self.signature is None or other.signature is None:
            return False
        return not types_match(self.signature.return_type, other.signature.return_type, bind)

    def absorb(self, other: "Entity") -> None:
        """Merge another record for the same entity into this one.

        Locations are unioned in first-seen order; specifiers (virtual,
        override, pure...) are unioned; a definition marks the entity defined.
        """
        for loc in other.declarations:
            if loc not in self.declarations:
                self.declarations.append(loc)
        if other.signature is not None:
            if self.signature is None:
                self.signature = other.signature
            else:
                self.signature = self.signature.with_specifiers(other.signature.specifiers)
        # a class-key seen on a definition wins over a forward declaration
        if other.is_defined and not self.is_defined:
            if other.kind in CLASS_LIKE_KINDS and self.kind in CLASS_LIKE_KINDS:
                self.kind = other.kind
        self.is_defined = self.is_defined or other.is_defined
        self.access = self.access or other.access
        self.template_params = self.template_params or other.template_params
        self.templated_kind = self.templated_kind or other.templated_kind

    def copy(self) -> "Entity":
        return Entity(
            id=self.id,
            kind=self.kind,
            qualified_name=self.qualified_name,
            signature=self.signature,
            declarations=list(self.declarations),
            is_abstract=self.is_abstract,
            access=self.access,
            raw_text=self.raw_text,
            template_params=self.template_params,
            templated_kind=self.templated_kind,
            template_args=self.template_args,
            is_defined=self.is_defined,
            discriminator=self.discriminator,
        )


@dataclass(frozen=True)
class Edge:
    """Typed, directed link between two entity ids.

    Metadata is stored as sorted (key, value) pairs so that two edges with
    the same content compare and hash equal.
    """

    source: str
    target: str
    kind: EdgeKind
    metadata: tuple[tuple[str, str], ...] = ()

    @classmethod
    def create(cls, source: str, target: str, kind: EdgeKind, **metadata: str) -> "Edge":
        return cls(source, target, kind, tuple(sorted((k, str(v)) for k, v in metadata.items())))

    @property
    def meta(self) -> dict[str, str]:
        return dict(self.metadata)

    def remap(self, ids: dict[str, str]) -> "Edge":
        return Edge(ids.get(self.source, self.source), ids.get(self.target, self.target), self.kind, self.metadata)
