# cppgraph/signature.py
# AI-Mind (C) 2025 by Martin Bukowski is licensed under CC BY-NC-SA 4.0
"""
Callable signatures: normalisation, identity, and override matching.

The identity of a callable is its parameter types plus its cv/ref
qualifiers, which is what C++ itself uses to tell overloads apart. Return
type and declaration specifiers (virtual, override, pure, static) are
carried on the Signature but never take part in identity, so a pure
virtual declaration and its later definition produce the same key.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from .declarations import SignatureSpec
from .errors import MalformedDeclaration

_TYPE_CHARS = re.compile(r"^[A-Za-z0-9_:<>,*&\[\]()\s.]+$")
_SPACE_BEFORE = re.compile(r"\s+([<>,*&\[\]()]|::)")
_SPACE_AFTER = re.compile(r"([<,(\[]|::)\s+")
_OPENERS = {"<": ">", "(": ")", "[": "]"}
# A possibly qualified name, or any single non-space character
_TYPE_TOKEN = re.compile(r"(?:::)?[A-Za-z_]\w*(?:::[A-Za-z_]\w*)*|\S")

CV_REF_QUALIFIERS = ("const", "volatile", "&", "&&")
PURE_MARKERS = ("pure", "=0", "= 0")


def _balanced(text: str) -> bool:
    stack: list[str] = []
    for ch in text:
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _OPENERS.values():
            if not stack or stack.pop() != ch:
                return False
    return not stack


def normalize_type(text: str) -> str:
    """Canonical spelling of a type: single spaces, no space around punctuation.

    Raises:
        MalformedDeclaration: if the text is empty, contains characters that
            cannot appear in a type, or has unbalanced brackets.
    """
    collapsed = " ".join(text.split())
    if not collapsed or not _TYPE_CHARS.match(collapsed) or not _balanced(collapsed):
        raise MalformedDeclaration(f"Unparseable type: {text!r}", raw_text=text)
    tightened = _SPACE_AFTER.sub(r"\1", _SPACE_BEFORE.sub(r"\1", collapsed))
    # "> >" collapses to ">>" above; keep one space after commas for readability
    return tightened.replace(",", ", ")


def normalize_parameter(text: str) -> str:
    """Normalise a parameter type and drop top-level const, which is not part
    of the function type."""
    t = normalize_type(text)
    if t.endswith(" const"):
        t = t[: -len(" const")]
    if t.startswith("const ") and not t.endswith(("*", "&")):
        t = t[len("const ") :]
    return t


@dataclass(frozen=True)
class Signature:
    """Normalised callable signature."""

    parameters: tuple[str, ...] = ()
    return_type: Optional[str] = None
    cv_ref: tuple[str, ...] = ()
    specifiers: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_const(self) -> bool:
        return "const" in self.cv_ref

    @property
    def is_virtual(self) -> bool:
        return "virtual" in self.specifiers

    @property
    def is_override(self) -> bool:
        return "override" in self.specifiers or "final" in self.specifiers

    @property
    def is_pure(self) -> bool:
        return "pure" in self.specifiers

    def identity(self) -> str:
        """The part of the signature that distinguishes overloads."""
        quals = " " + " ".join(self.cv_ref) if self.cv_ref else ""
        return f"({', '.join(self.parameters)}){quals}"

    def text(self) -> str:
        ret = f"{self.return_type} " if self.return_type else ""
        return f"{ret}{self.identity()}"

    def with_specifiers(self, extra: frozenset[str]) -> "Signature":
        return Signature(
            parameters=self.parameters,
            return_type=self.return_type,
            cv_ref=self.cv_ref,
            specifiers=self.specifiers | extra,
        )


def parse_signature(spec: SignatureSpec) -> Signature:
    """Build a Signature from front end tokens.

    Raises:
        MalformedDeclaration: if any type in the signature cannot be parsed.
            The exception carries the raw signature text.
    """
    raw = spec.raw_text()
    try:
        params = [normalize_parameter(p) for p in spec.parameters]
        return_type = normalize_type(spec.return_type) if spec.return_type else None
    except MalformedDeclaration as e:
        raise MalformedDeclaration(str(e), raw_text=raw) from e

    # f(void) declares no parameters
    if params == ["void"]:
        params = []

    cv_ref = []
    specifiers = set()
    for token in spec.qualifiers:
        token = token.strip()
        if token in CV_REF_QUALIFIERS:
            cv_ref.append(token)
        elif token in PURE_MARKERS:
            specifiers.add("pure")
        elif token:
            specifiers.add(token)

    # A pure specifier only appears on virtual functions
    if "pure" in specifiers:
        specifiers.add("virtual")

    return Signature(
        parameters=tuple(params),
        return_type=return_type,
        cv_ref=tuple(q for q in CV_REF_QUALIFIERS if q in cv_ref),
        specifiers=frozenset(specifiers),
    )


def _is_name(token: str) -> bool:
    return token[0].isalpha() or token[0] == "_" or token.startswith("::")


def _names_match(a: str, b: str, bind: Optional[Callable[[str], Optional[str]]]) -> bool:
    if a == b:
        return True
    if not (_is_name(a) and _is_name(b)):
        return False
    bound_a = bind(a) if bind else None
    bound_b = bind(b) if bind else None
    if bound_a and bound_b:
        return bound_a == bound_b
    # Without a binding for both, qualification alone is not a difference
    short, long = sorted((a.lstrip(":").split("::"), b.lstrip(":").split("::")), key=len)
    return long[len(long) - len(short):] == short


def types_match(
    mine: Optional[str],
    theirs: Optional[str],
    bind: Optional[Callable[[str], Optional[str]]] = None,
) -> bool:
    """Whether two spellings of a type denote the same type.

    The spellings are compared token by token. Names that both bind (through
    `bind`, which returns an entity id) must bind to the same entity; a name
    that binds to nothing matches any name it is a qualified suffix of, so
    "Point" and "shapes::Point" match while "int" and "long" do not. A
    missing type matches anything.
    """
    if mine is None or theirs is None or mine == theirs:
        return True
    a, b = _TYPE_TOKEN.findall(mine), _TYPE_TOKEN.findall(theirs)
    if len(a) != len(b):
        return False
    return all(_names_match(x, y, bind) for x, y in zip(a, b))


def covariant_core(type_text: Optional[str]) -> Optional[str]:
    """Class name behind a pointer or reference return type, or None."""
    if not type_text or not type_text.endswith(("*", "&")):
        return None
    core = type_text.rstrip("*&")
    words = [w for w in core.split(" ") if w not in ("const", "volatile")]
    return " ".join(words) or None


def returns_compatible(
    derived: Optional[str],
    base: Optional[str],
    is_derived_from: Callable[[str, str], bool],
) -> bool:
    """True if a derived return type may replace the base return type."""
    if derived == base:
        return True
    d_core = covariant_core(derived)
    b_core = covariant_core(base)
    if d_core is None or b_core is None:
        return False
    # pointer must stay pointer, reference must stay reference
    if derived[-1] != base[-1]:
        return False
    return d_core == b_core or is_derived_from(d_core, b_core)


def matches_override(
    derived: Signature,
    base: Signature,
    is_derived_from: Callable[[str, str], bool] = lambda d, b: False,
) -> bool:
    """Whether derived can override base: same parameters and cv/ref
    qualifiers, return type equal or covariant."""
    if derived.parameters != base.parameters or derived.cv_ref != base.cv_ref:
        return False
    return returns_compatible(derived.return_type, base.return_type, is_derived_from)
