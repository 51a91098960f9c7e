"""Parser-agnostic syntax-tree contract for declarative build scripts.

The splicer never sees a concrete parser's nodes. An adapter (see
``scaffold_sync.script.ruby``) classifies every statement once into a
``ScriptNode`` tagged with its shape, decodes literal arguments, and records
byte spans in the original UTF-8 buffer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from scaffold_sync.merge_types import Result


type NodeShape = Literal[
    "field_assignment",  # recv.field = rhs
    "dependency",        # add_dependency "x" / gem "x"
    "block_call",        # any other call carrying a do/{} block
    "call",
    "other",
]
type LiteralValue = str | tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ByteSpan:
    """Half-open byte range ``[start, end)`` in the original source buffer."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"ByteSpan.start must be >= 0, got {self.start}")
        if self.end < self.start:
            raise ValueError(
                f"ByteSpan.end ({self.end}) must be >= start ({self.start})",
            )

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True, slots=True)
class ScriptBlock:
    """A do/end or brace block attached to a call."""

    param: str | None                      # first block parameter, "spec" in |spec|
    body: ByteSpan | None                  # None for an empty block
    statements: tuple[ScriptNode, ...]


@dataclass(frozen=True, slots=True)
class ScriptNode:
    """One classified statement.

    ``arguments`` and ``value`` hold decoded literals; an entry is None when
    the source expression is computed (constant, method call, interpolation).
    """

    shape: NodeShape
    span: ByteSpan
    receiver: str | None         # receiver source text ("spec", "Gem::Specification")
    name: str                    # method name, or field name for assignments
    arguments: tuple[LiteralValue | None, ...] = ()
    value: LiteralValue | None = None   # right-hand side of a field assignment
    block: ScriptBlock | None = None

    @property
    def first_argument(self) -> LiteralValue | None:
        return self.arguments[0] if self.arguments else None


@dataclass(frozen=True, slots=True)
class ScriptTree:
    """Top-level statements of a parsed script plus the buffer they index."""

    source: bytes
    statements: tuple[ScriptNode, ...]


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """Why a script could not be turned into a ScriptTree."""

    reason: str


class ScriptParser(Protocol):
    """Anything that turns source bytes into a classified ScriptTree."""

    def parse(self, source: bytes) -> Result[ScriptTree, ParseFailure]: ...


class NodeMerger(Protocol):
    """External statement-level merger run before field splicing."""

    def merge(self, template: str, destination: str) -> str: ...


def walk_statements(statements: tuple[ScriptNode, ...]) -> list[ScriptNode]:
    """Pre-order flattening of statements and everything nested in blocks."""
    out: list[ScriptNode] = []
    for node in statements:
        out.append(node)
        if node.block is not None:
            out.extend(walk_statements(node.block.statements))
    return out
