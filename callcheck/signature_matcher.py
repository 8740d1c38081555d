"""
Signature matching: does a node denote a call to a target function?

matches() mirrors how the compiler resolves a call site, in priority order:

1. No signature                        -> never matches
2. :math.pow(...)   atom-qualified      -> module equal, name equal or wildcard
3. pow(...)         bare, no module     -> name equal
4. pow(...)         bare, module given  -> resolved through an import + filter
5. Foo.Bar.baz(...) alias-qualified     -> literal path, alias expansion, or
                                           partial path through an import
6. anything else                        -> no match

All functions here are pure and total: unknown shapes return False.
"""

from __future__ import annotations

from typing import Sequence

from .nodes import (
    CallNode,
    DefinitionNode,
    FunctionSignature,
    ModuleKind,
    ModulePath,
    ResolutionTable,
)


def matches(
    node: object,
    signature: FunctionSignature | None,
    table: ResolutionTable,
) -> bool:
    """Check whether node is a call to signature under the given resolution table."""
    if signature is None:
        return False
    if not isinstance(node, CallNode):
        return False

    qualifier = node.qualifier

    # :math.pow(2, 3) / :math._
    if qualifier is not None and qualifier.kind is ModuleKind.ATOM:
        return qualifier.path == signature.module and signature.name_matches(node.name)

    if node.is_bare:
        if node.name != signature.name:
            return False
        if signature.module is None:
            return True
        return _imported(node, signature.module, table)

    # Foo.Bar.baz()
    if qualifier is not None and qualifier.kind is ModuleKind.ALIAS:
        if signature.module is None or not signature.name_matches(node.name):
            return False
        return _alias_path_resolves(qualifier.path, signature.module, table)

    # receiver.fun() on an arbitrary expression
    return False


def _imported(call: CallNode, module: ModulePath, table: ResolutionTable) -> bool:
    """Bare call resolved through an import of module."""
    entry = table.get(module)
    if entry is None or entry.import_filter is None:
        # never imported, or only aliased
        return False
    return entry.import_filter.allows(call.name, call.arity)


def _alias_path_resolves(path: ModulePath, module: ModulePath, table: ResolutionTable) -> bool:
    # Same path: Foo.Bar.baz()
    if path == module:
        return True

    # Aliased: alias Foo.Bar; Bar.Baz.fun()
    head, tail = path[:1], path[1:]
    entry = table.get(head)
    if entry is not None and entry.path + tail == module:
        return True

    # Imported parent: import Foo; Bar.fun() for Foo.Bar.fun (best effort)
    return subtract_path(module, path) in table


def subtract_path(path: Sequence[str], remove: Sequence[str]) -> ModulePath:
    """
    Remove the first occurrence of each segment of remove from path.

    subtract_path(("A", "B", "C"), ("B",))      -> ("A", "C")
    subtract_path(("A", "B"), ("B", "B", "X"))  -> ("A",)
    """
    remaining = list(path)
    for segment in remove:
        if segment in remaining:
            remaining.remove(segment)
    return tuple(remaining)


# =============================================================================
# Definition predicates
# =============================================================================


def is_definition(node: object) -> bool:
    """True for def/defp nodes that have a body slot (possibly empty)."""
    return isinstance(node, DefinitionNode) and node.body is not None


def definition_name(node: object) -> str | None:
    if is_definition(node):
        return node.name
    return None


def is_definition_matching(node: object, signature: FunctionSignature | None) -> bool:
    """
    True if node defines signature's function with a non-empty body.

    Stricter than is_definition(): empty-bodied definitions are rejected.
    """
    if signature is None or not is_definition(node):
        return False
    return node.name == signature.name and len(node.body) > 0


def enclosing_matches(current_function: str | None, signature: FunctionSignature | None) -> bool:
    """
    True if the innermost enclosing function has signature's name.

    Only the name is compared; the signature's module is ignored.
    """
    if signature is None or current_function is None:
        return False
    return current_function == signature.name
