"""
Scope tracking for import/alias declarations.

Each declaration contributes one or more entries to a resolution table:

    import Foo.Bar                 -> (Foo, Bar) => Foo.Bar, unrestricted
    import Foo, only: [f: 1]       -> (Foo,)     => Foo, only {(f, 1)}
    import Root.{A, B}             -> (Root, A), (Root, B)
    alias Foo.Bar                  -> (Bar,)     => Foo.Bar
    alias Foo.Bar, as: B           -> (B,)       => Foo.Bar
    alias Root.{A, B.C}            -> (A,) => Root.A, (C,) => Root.B.C

Entries declared inside a function body land in the local table and are
dropped by the traversal when the function ends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .nodes import (
    UNRESTRICTED,
    AliasNode,
    FilterKind,
    ImportFilter,
    ImportNode,
    ModuleGroup,
    ModulePath,
    ResolutionTable,
    ScopeEntry,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeTables:
    """Module-level (outer) and function-local resolution tables."""

    outer: ResolutionTable = field(default_factory=dict)
    local: ResolutionTable = field(default_factory=dict)


def update(tables: ScopeTables, node: object, *, in_function: bool = False) -> ScopeTables:
    """
    Return tables updated with the entries declared by node.

    Non-declaration nodes pass through unchanged. Never raises.
    """
    if isinstance(node, ImportNode):
        import_filter = import_filter_for(node)
        entries = [(path, ScopeEntry(path, import_filter)) for path in expand(node.module)]
    elif isinstance(node, AliasNode):
        entries = []
        for path in expand(node.module):
            key = (node.as_name,) if node.as_name else path[-1:]
            entries.append((key, ScopeEntry(path)))
    else:
        return tables

    if not entries:
        return tables

    for key, entry in entries:
        logger.debug(
            f"Tracking {'local' if in_function else 'module'} scope entry "
            f"{'.'.join(key)} -> {'.'.join(entry.path)}"
        )

    if in_function:
        return ScopeTables(outer=tables.outer, local={**tables.local, **dict(entries)})
    return ScopeTables(outer={**tables.outer, **dict(entries)}, local=tables.local)


def expand(module: ModulePath | ModuleGroup) -> list[ModulePath]:
    """Expand Root.{A, B} into [Root.A, Root.B]; plain paths pass through."""
    if isinstance(module, ModuleGroup):
        return [module.root + branch for branch in module.branches if branch]
    if module:
        return [tuple(module)]
    return []


def import_filter_for(node: ImportNode) -> ImportFilter:
    """Derive the import filter from only:/except: options."""
    if isinstance(node.only, str):
        # only: :functions / :macros / :sigils
        return ImportFilter(category=node.only)
    if node.only is not None:
        return ImportFilter(kind=FilterKind.ONLY, functions=frozenset(node.only))
    if node.except_ is not None:
        return ImportFilter(kind=FilterKind.EXCEPT, functions=frozenset(node.except_))
    return UNRESTRICTED


def effective_table(tables: ScopeTables) -> ResolutionTable:
    """Union of both tables; local entries shadow module-level ones."""
    if not tables.local:
        return tables.outer
    return {**tables.outer, **tables.local}
