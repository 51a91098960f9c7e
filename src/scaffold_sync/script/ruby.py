"""tree-sitter-ruby adapter for the script syntax-tree contract.

tree-sitter reports node positions as byte offsets into the buffer it parsed,
which is exactly the coordinate system the splicer needs when titles or
descriptions carry multi-byte characters.

Classification happens once per statement:

- ``spec.name = "x"``                 -> field_assignment (receiver "spec")
- ``spec.add_dependency "rake"``      -> dependency
- ``gem "rake", require: false``      -> dependency
- ``Gem::Specification.new do |s|``   -> block_call, block statements nested
- anything else                       -> call / other
"""
from __future__ import annotations

import re
from collections.abc import Iterable

import tree_sitter_ruby
from tree_sitter import Language, Node, Parser

from scaffold_sync.merge_config import DEFAULT_DEPENDENCY_METHODS
from scaffold_sync.merge_types import Err, Ok, Result
from scaffold_sync.script.types import (
    ByteSpan,
    LiteralValue,
    ParseFailure,
    ScriptBlock,
    ScriptNode,
    ScriptTree,
)

RUBY_LANGUAGE = Language(tree_sitter_ruby.language())

_CALL_TYPES = frozenset({"call", "method_call"})
_BLOCK_TYPES = frozenset({"do_block", "block"})
_SKIPPED_TYPES = frozenset({"comment", "block_parameters", "empty_statement"})

_SIMPLE_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "s": " ",
    "0": "\0",
    "e": "\x1b",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}
_UNICODE_ESCAPE_RE = re.compile(r"^\\u\{?([0-9a-fA-F]+)\}?$")
_SINGLE_QUOTE_ESCAPE_RE = re.compile(r"\\([\\'])")


class RubyScriptParser:
    """ScriptParser implementation backed by tree-sitter-ruby."""

    def __init__(
        self,
        *,
        dependency_methods: Iterable[str] = DEFAULT_DEPENDENCY_METHODS,
    ) -> None:
        self._parser = Parser(RUBY_LANGUAGE)
        self._dependency_methods = frozenset(dependency_methods)

    def parse(self, source: bytes) -> Result[ScriptTree, ParseFailure]:
        """Parse Ruby source bytes into a classified ScriptTree."""
        tree = self._parser.parse(source)
        root = tree.root_node
        if root.has_error:
            return Err(ParseFailure("source contains syntax errors"))
        classifier = _Classifier(source, self._dependency_methods)
        return Ok(ScriptTree(
            source=source,
            statements=classifier.statements(_statement_nodes(root)),
        ))


class _Classifier:
    """Turns tree-sitter nodes into ScriptNodes against one source buffer."""

    def __init__(self, source: bytes, dependency_methods: frozenset[str]) -> None:
        self._source = source
        self._dependency_methods = dependency_methods

    def statements(self, nodes: list[Node]) -> tuple[ScriptNode, ...]:
        return tuple(self.classify(n) for n in nodes)

    def classify(self, node: Node) -> ScriptNode:
        span = ByteSpan(node.start_byte, node.end_byte)
        if node.type == "assignment":
            return self._assignment(node, span)
        if node.type in _CALL_TYPES:
            return self._call(node, span)
        return ScriptNode(shape="other", span=span, receiver=None, name=node.type)

    def _assignment(self, node: Node, span: ByteSpan) -> ScriptNode:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if (
            left is None
            or left.type not in _CALL_TYPES
            or left.child_by_field_name("arguments") is not None
        ):
            return ScriptNode(shape="other", span=span, receiver=None, name=node.type)

        receiver = left.child_by_field_name("receiver")
        method = left.child_by_field_name("method")
        if receiver is None or method is None:
            return ScriptNode(shape="other", span=span, receiver=None, name=node.type)

        return ScriptNode(
            shape="field_assignment",
            span=span,
            receiver=self._text(receiver).strip(),
            name=self._text(method),
            value=self.literal(right) if right is not None else None,
        )

    def _call(self, node: Node, span: ByteSpan) -> ScriptNode:
        method = node.child_by_field_name("method")
        if method is None:
            return ScriptNode(shape="other", span=span, receiver=None, name=node.type)

        receiver = node.child_by_field_name("receiver")
        args_node = node.child_by_field_name("arguments")
        arguments: tuple[LiteralValue | None, ...] = ()
        if args_node is not None:
            arguments = tuple(
                self.literal(a) for a in args_node.named_children
                if a.type != "comment"
            )

        block_node = node.child_by_field_name("block")
        block = self._block(block_node) if block_node is not None else None

        name = self._text(method)
        if name in self._dependency_methods:
            shape = "dependency"
        elif block is not None:
            shape = "block_call"
        else:
            shape = "call"

        return ScriptNode(
            shape=shape,
            span=span,
            receiver=self._text(receiver).strip() if receiver is not None else None,
            name=name,
            arguments=arguments,
            block=block,
        )

    def _block(self, node: Node) -> ScriptBlock | None:
        if node.type not in _BLOCK_TYPES:
            return None

        param: str | None = None
        params = node.child_by_field_name("parameters")
        if params is not None:
            for child in params.named_children:
                if child.type == "identifier":
                    param = self._text(child)
                    break

        body = node.child_by_field_name("body")
        stmt_nodes = _statement_nodes(body if body is not None else node)
        if not stmt_nodes:
            return ScriptBlock(param=param, body=None, statements=())

        return ScriptBlock(
            param=param,
            body=ByteSpan(stmt_nodes[0].start_byte, stmt_nodes[-1].end_byte),
            statements=self.statements(stmt_nodes),
        )

    def literal(self, node: Node) -> LiteralValue | None:
        """Decode a literal expression, or None for anything computed."""
        kind = node.type
        if kind == "string":
            return self._string(node)
        if kind == "simple_symbol":
            return self._text(node)[1:]
        if kind == "delimited_symbol":
            return self._string(node)
        if kind == "array":
            values = [self.literal(c) for c in node.named_children if c.type != "comment"]
            if all(isinstance(v, str) for v in values):
                return tuple(v for v in values if isinstance(v, str))
            return None
        if kind in ("string_array", "symbol_array"):
            return tuple(
                self._text(c) for c in node.named_children
                if c.type in ("bare_string", "bare_symbol")
            )
        return None

    def _string(self, node: Node) -> str | None:
        single_quoted = self._text(node).startswith("'")
        parts: list[str] = []
        for child in node.named_children:
            if child.type == "string_content":
                content = self._text(child)
                if single_quoted:
                    content = _SINGLE_QUOTE_ESCAPE_RE.sub(r"\1", content)
                parts.append(content)
            elif child.type == "escape_sequence":
                parts.append(_unescape(self._text(child)))
            else:
                # interpolation or other dynamic content
                return None
        return "".join(parts)

    def _text(self, node: Node) -> str:
        return self._source[node.start_byte:node.end_byte].decode("utf-8")


def _statement_nodes(node: Node) -> list[Node]:
    return [c for c in node.named_children if c.type not in _SKIPPED_TYPES]


def _unescape(seq: str) -> str:
    """Decode one double-quoted Ruby escape sequence."""
    m = _UNICODE_ESCAPE_RE.match(seq)
    if m:
        return chr(int(m.group(1), 16))
    if len(seq) == 2 and seq[0] == "\\":
        return _SIMPLE_ESCAPES.get(seq[1], seq[1])
    return seq
