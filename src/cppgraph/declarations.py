# cppgraph/declarations.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Declaration stream models.

These models describe what the external C++ front end hands to the
ingestion driver: a tree of declaration records in source order. Nothing
here is resolved yet; names are exactly as written in the source.

Example YAML (one translation unit):
    file: classes.hpp
    declarations:
      - kind: namespace
        name: shapes
        children:
          - kind: class
            name: Circle
            bases:
              - name: Shape
                access: public
            children:
              - kind: method
                name: area
                signature:
                  return_type: double
                  qualifiers: [const, override]
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field


class DeclKind(str, Enum):
    """Declaration kinds reported by the front end."""
    NAMESPACE = "namespace"
    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"
    ENUM_CLASS = "enum-class"
    FUNCTION = "function"
    METHOD = "method"
    FIELD = "field"
    VARIABLE = "variable"
    ENUMERATOR = "enumerator"
    USING = "using"


class Access(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


class SourceLocation(BaseModel, frozen=True):
    """Where a declaration appears. Bookkeeping only, never identity."""
    file: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class SignatureSpec(BaseModel):
    """Signature tokens for a callable, as written."""
    parameters: list[str] = Field(default_factory=list)
    """Parameter types in order. Names, if present, are ignored."""

    return_type: Optional[str] = None
    """None for constructors and destructors."""

    qualifiers: list[str] = Field(default_factory=list)
    """const, volatile, &, &&, virtual, override, final, pure, static, noexcept..."""

    def raw_text(self) -> str:
        params = ", ".join(self.parameters)
        quals = " ".join(self.qualifiers)
        text = f"{self.return_type or ''}({params}) {quals}"
        return text.strip()


class BaseSpecifier(BaseModel):
    """One entry of a class's base-clause."""
    name: str
    access: Optional[Access] = None
    """None means the class-key default (private for class, public for struct)."""

    is_virtual: bool = False


class NameUse(BaseModel):
    """A name used inside a declaration (call, type use, template use)."""
    name: str
    template_args: Optional[list[str]] = None
    """Present when the use names a template specialisation, e.g. Container<int>."""

    location: Optional[SourceLocation] = None


class Declaration(BaseModel):
    """A single declaration record, with nested member declarations."""
    kind: DeclKind
    name: str
    scope: list[str] = Field(default_factory=list)
    """Explicit qualifier written on the declaration (Circle for Circle::area)."""

    signature: Optional[SignatureSpec] = None
    bases: list[BaseSpecifier] = Field(default_factory=list)
    template_params: list[str] = Field(default_factory=list)
    access: Optional[Access] = None
    location: SourceLocation
    is_definition: bool = False
    is_directive: bool = False
    """For kind=using: True for `using namespace X`, False for `using X::y`."""

    uses: list[NameUse] = Field(default_factory=list)
    children: list["Declaration"] = Field(default_factory=list)

    @property
    def is_template(self) -> bool:
        return bool(self.template_params)

    def walk(self):
        """Yield this declaration and its descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


Declaration.model_rebuild()


class TranslationUnit(BaseModel):
    """Ordered declarations of one source file."""
    file: str
    declarations: list[Declaration] = Field(default_factory=list)


def _fill_locations(items: list[dict], file: str) -> None:
    """Default missing locations to the unit's file so fixtures stay terse."""
    for item in items:
        item.setdefault("location", {"file": file})
        if isinstance(item["location"], int):
            item["location"] = {"file": file, "line": item["location"]}
        for use in item.get("uses", []):
            if isinstance(use, dict) and isinstance(use.get("location"), int):
                use["location"] = {"file": file, "line": use["location"]}
        _fill_locations(item.get("children", []), file)


def load_declarations(source: Union[str, Path, dict]) -> TranslationUnit:
    """Load a translation unit from a YAML file, YAML text, or a parsed dict.

    Locations may be omitted (the unit's file is used) or given as a bare
    line number.
    """
    if isinstance(source, dict):
        data = source
    elif isinstance(source, Path) or source.endswith((".yaml", ".yml")):
        with open(source) as f:
            data = yaml.safe_load(f)
    else:
        data = yaml.safe_load(source)

    if not isinstance(data, dict):
        raise ValueError(f"Not a translation unit document: {source!r}")

    file = data.get("file", "<unknown>")
    _fill_locations(data.get("declarations", []), file)
    return TranslationUnit(**data)
