"""
Node model for call detection.

The detection engine never looks at source text. It works on a small tree of
immutable tagged nodes:

- CallNode: a local or remote function call
- DefinitionNode: a def/defp function definition
- ImportNode / AliasNode: lexical declarations that change name resolution
- GenericNode: any other syntactic form (only its children matter)

Anything that is not one of these classes is an opaque leaf.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# Ordered, non-empty sequence of name segments, e.g. ("Foo", "Bar") for Foo.Bar.
# Atom modules keep their colon: (":math",).
ModulePath = tuple[str, ...]

# Matches any function name in a FunctionSignature.
WILDCARD = "_"


def module_path(dotted: str) -> ModulePath:
    """Split a dotted module name into a ModulePath.

    Examples:
        "Foo.Bar" -> ("Foo", "Bar")
        ":math"   -> (":math",)
    """
    return tuple(segment for segment in dotted.strip().split(".") if segment)


# =============================================================================
# Signatures
# =============================================================================


@dataclass(frozen=True)
class FunctionSignature:
    """
    A target function: optional module path plus name (or WILDCARD).

    module=None means "no module qualifier", which only matches bare calls.
    """

    module: ModulePath | None
    name: str

    @property
    def is_wildcard(self) -> bool:
        return self.name == WILDCARD

    def name_matches(self, name: str) -> bool:
        """Wildcard-aware name comparison."""
        return self.is_wildcard or self.name == name

    @classmethod
    def parse(cls, dotted: str) -> "FunctionSignature":
        """
        Build a signature from dotted notation.

        Examples:
            "helper"        -> FunctionSignature(None, "helper")
            "Enum.map"      -> FunctionSignature(("Enum",), "map")
            ":math._"       -> FunctionSignature((":math",), "_")
            "Foo.Bar.baz"   -> FunctionSignature(("Foo", "Bar"), "baz")
        """
        parts = module_path(dotted)
        if not parts:
            raise ValueError(f"Empty function signature: {dotted!r}")
        if len(parts) == 1:
            return cls(module=None, name=parts[0])
        return cls(module=parts[:-1], name=parts[-1])

    def __str__(self) -> str:
        if self.module is None:
            return self.name
        return ".".join(self.module + (self.name,))


# =============================================================================
# Import filters
# =============================================================================


class FilterKind(Enum):
    UNRESTRICTED = "unrestricted"
    ONLY = "only"
    EXCEPT = "except"


@dataclass(frozen=True)
class ImportFilter:
    """
    Which functions an import brings into bare-call scope.

    `only: :functions` style category filters are kept as UNRESTRICTED with
    the category recorded; they do not restrict call matching.
    """

    kind: FilterKind = FilterKind.UNRESTRICTED
    functions: frozenset[tuple[str, int]] = frozenset()
    category: str | None = None

    def allows(self, name: str, arity: int) -> bool:
        if self.kind is FilterKind.ONLY:
            return (name, arity) in self.functions
        if self.kind is FilterKind.EXCEPT:
            return (name, arity) not in self.functions
        return True


UNRESTRICTED = ImportFilter()


@dataclass(frozen=True)
class ScopeEntry:
    """Resolution table value: resolved module path and its import filter.

    import_filter is None for entries created by `alias`, which rename a
    module without importing its functions.
    """

    path: ModulePath
    import_filter: ImportFilter | None = None


# Alias path -> resolved entry
ResolutionTable = dict[ModulePath, ScopeEntry]


# =============================================================================
# Nodes
# =============================================================================


class ModuleKind(Enum):
    ATOM = "atom"  # :math.pow(2, 3)
    ALIAS = "alias"  # Foo.Bar.baz()


@dataclass(frozen=True)
class ModuleRef:
    """Literal module qualifier of a remote call."""

    kind: ModuleKind
    path: ModulePath


@dataclass(frozen=True)
class ModuleGroup:
    """Multi-alias form Root.{A, B.C}."""

    root: ModulePath
    branches: tuple[ModulePath, ...]


class Visibility(Enum):
    PUBLIC = "def"
    PRIVATE = "defp"


@dataclass(frozen=True)
class CallNode:
    """
    A function call.

    qualifier is set for remote calls on a literal module (:math.pow, Foo.bar);
    receiver is set for remote calls on an arbitrary expression (conn.assigns).
    Both unset means a bare local call.
    """

    name: str
    args: tuple["Node", ...] = ()
    qualifier: ModuleRef | None = None
    receiver: "Node | None" = None
    line: int | None = field(default=None, compare=False)

    @property
    def arity(self) -> int:
        return len(self.args)

    @property
    def is_bare(self) -> bool:
        return self.qualifier is None and self.receiver is None


@dataclass(frozen=True)
class DefinitionNode:
    """def/defp. body=None means the definition has no body (bodiless head)."""

    visibility: Visibility
    name: str
    params: tuple["Node", ...] = ()
    body: tuple["Node", ...] | None = ()
    guard: "Node | None" = None
    line: int | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ImportNode:
    """
    import Module [, only: ... | except: ...]

    only is either (name, arity) pairs or a category ("functions", "macros",
    "sigils").
    """

    module: ModulePath | ModuleGroup
    only: tuple[tuple[str, int], ...] | str | None = None
    except_: tuple[tuple[str, int], ...] | None = None
    line: int | None = field(default=None, compare=False)


@dataclass(frozen=True)
class AliasNode:
    """alias Module [, as: Name]"""

    module: ModulePath | ModuleGroup
    as_name: str | None = None
    line: int | None = field(default=None, compare=False)


@dataclass(frozen=True)
class GenericNode:
    kind: str
    children: tuple["Node", ...] = ()
    text: str | None = None
    line: int | None = field(default=None, compare=False)


Node = Union[CallNode, DefinitionNode, ImportNode, AliasNode, GenericNode]


def children_of(node: object) -> tuple:
    """Structural children in source order. Unknown objects have none."""
    if isinstance(node, CallNode):
        if node.receiver is not None:
            return (node.receiver,) + node.args
        return node.args
    if isinstance(node, DefinitionNode):
        children = node.params
        if node.guard is not None:
            children = children + (node.guard,)
        if node.body:
            children = children + node.body
        return children
    if isinstance(node, GenericNode):
        return node.children
    # ImportNode / AliasNode carry only declaration data
    return ()
