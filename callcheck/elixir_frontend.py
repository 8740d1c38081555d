"""
Elixir front end: tree-sitter-elixir parse tree -> callcheck nodes.

The detection engine only needs a handful of shapes, so the conversion is
shallow:

- def/defp calls                   -> DefinitionNode
- import/alias calls               -> ImportNode / AliasNode
- local and remote calls           -> CallNode
- local captures (&helper/1)       -> CallNode with one placeholder per argument
- everything else                  -> GenericNode (children converted)

Arity follows the compiled form: a trailing keyword list is one argument and
a do-block is one more (`if x do ... end` is if/2).

Declarations whose module argument cannot be read (e.g. `alias __MODULE__`)
become GenericNode, so they never affect name resolution.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .nodes import (
    AliasNode,
    CallNode,
    DefinitionNode,
    FunctionSignature,
    GenericNode,
    ImportNode,
    ModuleGroup,
    ModuleKind,
    ModulePath,
    ModuleRef,
    Node,
    Visibility,
    module_path,
)
from .traversal import detect

logger = logging.getLogger(__name__)

# Source size limit; override with CALLCHECK_MAX_SOURCE_SIZE
DEFAULT_MAX_SOURCE_SIZE = 5_000_000  # 5MB
MAX_SOURCE_SIZE = int(os.environ.get("CALLCHECK_MAX_SOURCE_SIZE", DEFAULT_MAX_SOURCE_SIZE))

TREE_SITTER_ELIXIR_AVAILABLE = False
try:
    from tree_sitter import Language, Parser
    import tree_sitter_elixir

    TREE_SITTER_ELIXIR_AVAILABLE = True
except ImportError:
    pass


class SourceTooLargeError(Exception):
    """Raised when source exceeds MAX_SOURCE_SIZE."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Source is {size:,} bytes, exceeds limit of {limit:,} bytes. "
            f"Set CALLCHECK_MAX_SOURCE_SIZE environment variable to increase limit."
        )


class ElixirParseError(Exception):
    """Raised when tree-sitter parsing fails."""

    def __init__(self, path: Path | None, error: Exception | str):
        self.path = path
        self.original_error = error
        where = f" {path}" if path else ""
        super().__init__(f"Failed to parse{where} as elixir: {error}")


DEFINITION_CALLS = {"def": Visibility.PUBLIC, "defp": Visibility.PRIVATE}

_parser = None


def _get_parser():
    """Get or create the tree-sitter Elixir parser."""
    global _parser
    if _parser is None:
        _parser = Parser(Language(tree_sitter_elixir.language()))
    return _parser


def parse_elixir(source: str | bytes, path: Path | None = None) -> Node:
    """
    Parse Elixir source into a callcheck node tree.

    Args:
        source: Elixir source code
        path: Optional file path, only used in error messages

    Returns:
        GenericNode of kind "source" holding the top-level expressions

    Raises:
        SourceTooLargeError: source exceeds MAX_SOURCE_SIZE
        ElixirParseError: tree-sitter-elixir missing or parsing failed
    """
    if isinstance(source, str):
        source = source.encode("utf-8")

    if len(source) > MAX_SOURCE_SIZE:
        raise SourceTooLargeError(len(source), MAX_SOURCE_SIZE)

    if not TREE_SITTER_ELIXIR_AVAILABLE:
        raise ElixirParseError(path, "tree-sitter-elixir is not installed")

    try:
        tree = _get_parser().parse(source)
    except Exception as e:
        raise ElixirParseError(path, e) from e

    if tree.root_node.has_error:
        # tree-sitter recovers; convert what it could read
        logger.warning(f"Syntax errors in {path or '<source>'}, analysis may be incomplete")

    logger.debug(f"Parsed {len(source):,} bytes of elixir from {path or '<source>'}")
    return _ElixirConverter(source).convert(tree.root_node)


def parse_elixir_file(file_path: str | Path) -> Node:
    """Read and parse an Elixir file."""
    file_path = Path(file_path)
    return parse_elixir(file_path.read_bytes(), path=file_path)


def detect_in_source(
    source: str | bytes,
    called: FunctionSignature | str | None,
    caller: FunctionSignature | str | None = None,
) -> bool:
    """Parse source and run detect(); signatures may be given in dotted form."""
    if isinstance(called, str):
        called = FunctionSignature.parse(called)
    if isinstance(caller, str):
        caller = FunctionSignature.parse(caller)
    return detect(parse_elixir(source), called, caller)


class _ElixirConverter:
    """Converts tree-sitter-elixir nodes; one instance per source buffer."""

    def __init__(self, source: bytes):
        self.source = source
        # (tree-sitter node id, type) -> converted node
        self.converted: dict[tuple[int, str], Node] = {}

    def text(self, node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def named(self, node) -> list:
        return [c for c in node.named_children if c.type != "comment"]

    def child_of_type(self, node, node_type: str):
        for child in node.children:
            if child.type == node_type:
                return child
        return None

    def field(self, node, name: str, index: int):
        """Field lookup, falling back to the index-th named child."""
        child = node.child_by_field_name(name)
        if child is not None:
            return child
        children = self.named(node)
        if -len(children) <= index < len(children):
            return children[index]
        return None

    def convert(self, root) -> Node:
        """
        Convert bottom-up from an explicit stack.

        Every named descendant is converted before its parent, so the
        per-node converters only look up finished children and deep trees
        (long pipelines) never recurse.
        """
        stack = [(root, False)]
        while stack:
            node, children_done = stack.pop()
            if children_done:
                self.converted[(node.id, node.type)] = self.convert_node(node)
                continue
            stack.append((node, True))
            for child in reversed(self.named(node)):
                stack.append((child, False))
        return self.converted[(root.id, root.type)]

    def node_for(self, node) -> Node:
        """Converted form of a descendant of the node being converted."""
        return self.converted[(node.id, node.type)]

    def convert_node(self, node) -> Node:
        if node.type == "call":
            return self.convert_call(node)
        if node.type == "unary_operator":
            capture = self.local_capture(node)
            if capture is not None:
                return GenericNode(kind=node.type, children=(capture,), line=node.start_point[0] + 1)
        return self.generic(node)

    def local_capture(self, node) -> CallNode | None:
        """&helper/1 -> CallNode("helper") with one placeholder per captured argument."""
        if self.operator(node) != "&":
            return None
        operand = self.field(node, "operand", 0)
        if operand is None or operand.type != "binary_operator" or self.operator(operand) != "/":
            return None
        name = self.field(operand, "left", 0)
        arity = self.field(operand, "right", -1)
        if name is None or arity is None or name.type != "identifier":
            return None
        count = self.integer(arity)
        if count is None:
            return None
        return CallNode(
            name=self.text(name),
            args=tuple(GenericNode("capture_argument", text=f"&{i}") for i in range(1, count + 1)),
            line=node.start_point[0] + 1,
        )

    def generic(self, node) -> GenericNode:
        children = tuple(self.node_for(c) for c in self.named(node))
        return GenericNode(
            kind=node.type,
            children=children,
            text=None if children else self.text(node),
            line=node.start_point[0] + 1,
        )

    # === Calls ===

    def convert_call(self, node) -> Node:
        target = self.field(node, "target", 0)
        if target is None:
            return self.generic(node)

        if target.type == "identifier":
            name = self.text(target)
            if name in DEFINITION_CALLS:
                return self.convert_definition(node, DEFINITION_CALLS[name]) or self.generic(node)
            if name == "import":
                return self.convert_import(node) or self.generic(node)
            if name == "alias":
                return self.convert_alias(node) or self.generic(node)
            return CallNode(
                name=name,
                args=self.call_args(node),
                line=node.start_point[0] + 1,
            )

        if target.type == "dot":
            return self.convert_remote_call(node, target)

        return self.generic(node)

    def convert_remote_call(self, node, dot) -> Node:
        left = self.field(dot, "left", 0)
        right = dot.child_by_field_name("right")
        if right is None:
            # fun.(x) has no right-hand name
            named = self.named(dot)
            right = named[1] if len(named) > 1 else None
        if left is None or right is None or right.type != "identifier":
            return self.generic(node)

        qualifier = None
        receiver = None
        if left.type == "alias":
            qualifier = ModuleRef(ModuleKind.ALIAS, module_path(self.text(left)))
        elif left.type == "atom":
            qualifier = ModuleRef(ModuleKind.ATOM, (self.text(left).strip(),))
        else:
            receiver = self.node_for(left)

        return CallNode(
            name=self.text(right),
            args=self.call_args(node),
            qualifier=qualifier,
            receiver=receiver,
            line=node.start_point[0] + 1,
        )

    def call_args(self, node) -> tuple[Node, ...]:
        args: list[Node] = []
        arguments = self.child_of_type(node, "arguments")
        if arguments is not None:
            args.extend(self.node_for(c) for c in self.named(arguments))
        do_block = self.child_of_type(node, "do_block")
        if do_block is not None:
            args.append(self.node_for(do_block))
        return tuple(args)

    # === Definitions ===

    def convert_definition(self, node, visibility: Visibility) -> DefinitionNode | None:
        arguments = self.child_of_type(node, "arguments")
        if arguments is None:
            return None
        named = self.named(arguments)
        if not named:
            return None

        head = named[0]
        guard = None
        if head.type == "binary_operator" and self.operator(head) == "when":
            guard = self.field(head, "right", -1)
            head = self.field(head, "left", 0)
            if head is None:
                return None

        if head.type == "identifier":
            name = self.text(head)
            params: tuple[Node, ...] = ()
        elif head.type == "call":
            target = self.field(head, "target", 0)
            if target is None or target.type != "identifier":
                return None
            name = self.text(target)
            params = self.call_args(head)
        else:
            return None

        body = self.definition_body(node, named[1:])
        return DefinitionNode(
            visibility=visibility,
            name=name,
            params=params,
            body=body,
            guard=self.node_for(guard) if guard is not None else None,
            line=node.start_point[0] + 1,
        )

    def definition_body(self, node, rest: list) -> tuple[Node, ...] | None:
        do_block = self.child_of_type(node, "do_block")
        if do_block is not None:
            return tuple(self.node_for(c) for c in self.named(do_block))

        # def f(x), do: x * 2
        for arg in rest:
            if arg.type != "keywords":
                continue
            for key, value in self.pairs(arg):
                if key == "do":
                    return (self.node_for(value),)
        return None

    def operator(self, node) -> str | None:
        op = node.child_by_field_name("operator")
        if op is not None:
            return self.text(op).strip()
        for child in node.children:
            if not child.is_named:
                return self.text(child).strip()
        return None

    # === Declarations ===

    def declaration_args(self, node) -> tuple[object, list] | None:
        """Module argument and keyword pairs of an import/alias call."""
        arguments = self.child_of_type(node, "arguments")
        if arguments is None:
            return None
        named = self.named(arguments)
        if not named:
            return None

        module = self.module_spec(named[0])
        if module is None:
            return None

        options: list = []
        for arg in named[1:]:
            if arg.type == "keywords":
                options.extend(self.pairs(arg))
            elif arg.type == "list":
                # import Foo, [only: [f: 1]]
                for item in self.named(arg):
                    if item.type == "keywords":
                        options.extend(self.pairs(item))
        return module, options

    def convert_import(self, node) -> ImportNode | None:
        parsed = self.declaration_args(node)
        if parsed is None:
            return None
        module, options = parsed

        only = None
        except_ = None
        for key, value in options:
            if key == "only":
                if value.type == "atom":
                    only = self.text(value).lstrip(":")
                elif value.type == "list":
                    only = self.function_arities(value)
            elif key == "except" and value.type == "list":
                except_ = self.function_arities(value)

        return ImportNode(module=module, only=only, except_=except_, line=node.start_point[0] + 1)

    def convert_alias(self, node) -> AliasNode | None:
        parsed = self.declaration_args(node)
        if parsed is None:
            return None
        module, options = parsed

        as_name = None
        for key, value in options:
            if key == "as" and value.type == "alias":
                as_name = self.text(value)

        return AliasNode(module=module, as_name=as_name, line=node.start_point[0] + 1)

    def module_spec(self, node) -> ModulePath | ModuleGroup | None:
        """Foo.Bar, :math or Root.{A, B}."""
        if node.type == "alias":
            return module_path(self.text(node)) or None
        if node.type == "atom":
            return (self.text(node).strip(),)
        if node.type == "dot":
            left = self.field(node, "left", 0)
            right = self.field(node, "right", -1)
            if left is None or right is None or left.type != "alias" or right.type != "tuple":
                return None
            branches = tuple(
                module_path(self.text(b)) for b in self.named(right) if b.type == "alias"
            )
            return ModuleGroup(root=module_path(self.text(left)), branches=branches)
        return None

    def pairs(self, keywords) -> list[tuple[str, object]]:
        """(key, value node) for each pair of a keywords node."""
        result = []
        for pair in self.named(keywords):
            if pair.type != "pair":
                continue
            key = self.field(pair, "key", 0)
            value = self.field(pair, "value", -1)
            if key is None or value is None or key == value:
                continue
            result.append((self.text(key).strip().rstrip(":"), value))
        return result

    def function_arities(self, list_node) -> tuple[tuple[str, int], ...]:
        """[pow: 2, sqrt: 1] or [{:pow, 2}] -> (("pow", 2), ("sqrt", 1))"""
        result = []
        for item in self.named(list_node):
            if item.type == "keywords":
                for key, value in self.pairs(item):
                    arity = self.integer(value)
                    if arity is not None:
                        result.append((key, arity))
            elif item.type == "tuple":
                elements = self.named(item)
                if len(elements) == 2 and elements[0].type == "atom":
                    arity = self.integer(elements[1])
                    if arity is not None:
                        result.append((self.text(elements[0]).lstrip(":"), arity))
        return tuple(result)

    def integer(self, node) -> int | None:
        if node.type != "integer":
            return None
        try:
            return int(self.text(node).replace("_", ""))
        except ValueError:
            return None
