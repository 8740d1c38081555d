"""
Traversal engine: single walk, two visits per node.

Pre-order visit:
- track import/alias declarations in the current scope
- entering a def/defp sets the current function for all descendants

Post-order visit (after every child):
- test the node against the target signature unless already found
- leaving a def/defp clears the current function and its local scope

The accumulator (TraversalState) is frozen; every visit returns a new one.
The walk uses an explicit stack so deeply nested trees do not hit the
interpreter recursion limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from .nodes import FunctionSignature, ResolutionTable, children_of
from .scope_tracker import ScopeTables, effective_table, update
from .signature_matcher import definition_name, enclosing_matches, is_definition, matches

logger = logging.getLogger(__name__)

_ENTER = 0
_EXIT = 1


@dataclass(frozen=True)
class TraversalState:
    """Accumulator threaded through the walk."""

    target_called: FunctionSignature | None
    target_caller: FunctionSignature | None = None
    current_function: str | None = None
    tables: ScopeTables = field(default_factory=ScopeTables)
    found: bool = False

    @property
    def local_table(self) -> ResolutionTable:
        return self.tables.local

    @property
    def outer_table(self) -> ResolutionTable:
        return self.tables.outer


def enter(node: object, state: TraversalState) -> TraversalState:
    """Pre-order visit."""
    tables = update(state.tables, node, in_function=state.current_function is not None)
    if tables is not state.tables:
        state = replace(state, tables=tables)

    if is_definition(node):
        state = replace(state, current_function=definition_name(node))
    return state


def leave(node: object, state: TraversalState) -> TraversalState:
    """Post-order visit."""
    state = find(node, state)

    if is_definition(node):
        state = replace(
            state,
            current_function=None,
            tables=ScopeTables(outer=state.tables.outer),
        )
    return state


def find(node: object, state: TraversalState) -> TraversalState:
    """Set found if node is a matching call in an acceptable caller."""
    if state.found:
        return state

    table = effective_table(state.tables)
    call_ok = matches(node, state.target_called, table) and not enclosing_matches(
        state.current_function, state.target_called
    )
    if not call_ok:
        return state

    caller_ok = state.target_caller is None or enclosing_matches(
        state.current_function, state.target_caller
    )
    if not caller_ok:
        return state

    logger.debug(
        f"Found call to {state.target_called} in {state.current_function or '<module>'}"
        f" at line {getattr(node, 'line', None)}"
    )
    return replace(state, found=True)


def walk(
    root: object,
    called: FunctionSignature | None,
    caller: FunctionSignature | None = None,
) -> TraversalState:
    """Walk the whole tree and return the final accumulator."""
    state = TraversalState(target_called=called, target_caller=caller)
    stack: list[tuple[int, object]] = [(_ENTER, root)]

    while stack:
        phase, node = stack.pop()
        if phase == _EXIT:
            state = leave(node, state)
            continue

        state = enter(node, state)
        stack.append((_EXIT, node))
        # reversed so children are visited left to right
        for child in reversed(children_of(node)):
            stack.append((_ENTER, child))

    return state


def detect(
    root: object,
    called: FunctionSignature | None,
    caller: FunctionSignature | None = None,
) -> bool:
    """
    Does a call matching called occur in root, inside caller if given?

    Args:
        root: Node tree to search
        called: Target function, or None (never matches)
        caller: Required enclosing function, or None for anywhere

    Returns:
        True if a matching call was found
    """
    return walk(root, called, caller).found
