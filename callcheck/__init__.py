"""callcheck - find calls to a target function in an Elixir syntax tree."""

from .assert_call import AssertCall, Comment, CommentType, Verdict, failures, run, run_all
from .nodes import (
    WILDCARD,
    AliasNode,
    CallNode,
    DefinitionNode,
    FunctionSignature,
    GenericNode,
    ImportNode,
    ModuleGroup,
    ModuleKind,
    ModuleRef,
    Visibility,
)
from .traversal import detect, walk

__all__ = [
    "WILDCARD",
    "AliasNode",
    "AssertCall",
    "CallNode",
    "Comment",
    "CommentType",
    "DefinitionNode",
    "FunctionSignature",
    "GenericNode",
    "ImportNode",
    "ModuleGroup",
    "ModuleKind",
    "ModuleRef",
    "Verdict",
    "Visibility",
    "detect",
    "failures",
    "run",
    "run_all",
    "walk",
]
