"""Field-level splicing of declarative script bodies.

Edits individual declarations inside a block body (``spec.name = "x"``,
``spec.add_dependency "y"``) using byte spans taken from a classified syntax
tree, leaving every other byte of the script intact.

Edit offsets are relative to the *body region*: the block body span widened
back to the start of its first line and forward over a trailing comment on
its last line, so whole-line removals and end-of-body insertions never split
a line. All arithmetic is in bytes; replacements are encoded as UTF-8 only at
application time.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from scaffold_sync.merge_config import DEFAULT_CONFIG, MergeConfig
from scaffold_sync.merge_types import Err, Ok, Result
from scaffold_sync.script.types import ByteSpan, LiteralValue, ScriptNode

logger = logging.getLogger(__name__)

type FieldValue = str | Sequence[str]

_PLACEHOLDER_RE = re.compile(r"^[^\x00-\x7F]{1,4}\s*$")
# "#{", "#@" and "#$" interpolate inside a double-quoted Ruby string.
_INTERPOLATION_RE = re.compile(r"#(?=[{@$])")
_DEFAULT_INDENT = "  "


@dataclass(frozen=True, slots=True)
class Edit:
    """Replace ``length`` bytes at ``offset`` with ``replacement``."""

    offset: int
    length: int
    replacement: str


@dataclass(frozen=True, slots=True)
class SpliceSkip:
    """Why no edit was produced for a field."""

    field: str
    reason: str


def is_placeholder(value: object) -> bool:
    """True for template stand-ins such as a lone emoji."""
    return isinstance(value, str) and _PLACEHOLDER_RE.match(value.strip()) is not None


def build_literal(value: FieldValue) -> str:
    """Render a field value as a Ruby literal."""
    if isinstance(value, str):
        return _quote(value)
    return "[" + ", ".join(_quote(str(v)) for v in value if v is not None) + "]"


def body_region(source: bytes, body: ByteSpan) -> ByteSpan:
    """Widen a block body span to whole lines where that is safe.

    The start moves back to the beginning of its line when only indentation
    precedes it. The end moves forward to the end of its line (newline
    excluded) when only whitespace or a comment follows.
    """
    start = body.start
    line_start = source.rfind(b"\n", 0, body.start) + 1
    if not source[line_start:body.start].strip():
        start = line_start

    end = body.end
    line_end = source.find(b"\n", body.end)
    if line_end == -1:
        line_end = len(source)
    rest = source[body.end:line_end].strip()
    if not rest or rest.startswith(b"#"):
        end = line_end
    return ByteSpan(start, end)


def find_field_node(
    statements: Sequence[ScriptNode], receiver: str, field: str,
) -> ScriptNode | None:
    """The first ``receiver.field = ...`` assignment, or None."""
    for node in statements:
        if (
            node.shape == "field_assignment"
            and node.receiver == receiver
            and node.name == field
        ):
            return node
    return None


def replace_fields(
    source: bytes,
    statements: Sequence[ScriptNode],
    region: ByteSpan,
    receiver: str,
    field_map: Mapping[str, FieldValue | None],
    *,
    config: MergeConfig | None = None,
) -> list[Edit]:
    """Edits that set each requested field, replacing or inserting as needed."""
    cfg = config or DEFAULT_CONFIG
    body = source[region.start:region.end]
    edits: list[Edit] = []
    for field, value in field_map.items():
        if value is None:
            continue
        found = find_field_node(statements, receiver, field)
        if found is not None:
            result = build_replacement_edit(
                found, region, receiver, field, value, config=cfg,
            )
        else:
            result = build_insertion_edit(
                source, statements, region, body, receiver, field, value,
                config=cfg,
            )
        match result:
            case Ok(value=edit):
                edits.append(edit)
            case Err(error=skip):
                logger.debug("skipping %s: %s", skip.field, skip.reason)
    return edits


def build_replacement_edit(
    node: ScriptNode,
    region: ByteSpan,
    receiver: str,
    field: str,
    value: FieldValue,
    *,
    config: MergeConfig = DEFAULT_CONFIG,
) -> Result[Edit, SpliceSkip]:
    """Replace an existing assignment's span with the new literal."""
    existing = node.value
    if (
        field in config.freeform_fields
        and is_placeholder(value)
        and existing is not None
        and not is_placeholder(existing)
    ):
        return Err(SpliceSkip(field, "keeping real content over placeholder"))

    if existing is None:
        logger.info(
            "not replacing %s.%s: existing value is not a literal",
            receiver, field,
        )
        return Err(SpliceSkip(field, "existing value is not a literal"))

    if _same_value(existing, value):
        return Err(SpliceSkip(field, "already up to date"))

    return Ok(Edit(
        offset=node.span.start - region.start,
        length=node.span.length,
        replacement=f"{receiver}.{field} = {build_literal(value)}",
    ))


def build_insertion_edit(
    source: bytes,
    statements: Sequence[ScriptNode],
    region: ByteSpan,
    body: bytes,
    receiver: str,
    field: str,
    value: FieldValue,
    *,
    config: MergeConfig = DEFAULT_CONFIG,
) -> Result[Edit, SpliceSkip]:
    """Insert a new assignment after the anchor field, else at body end."""
    if field in config.freeform_fields and is_placeholder(value):
        return Err(SpliceSkip(field, "not inserting a placeholder"))

    line = f"{receiver}.{field} = {build_literal(value)}"
    return Ok(insert_line_edit(
        source, statements, region, body, line,
        anchor=find_field_node(statements, receiver, config.anchor_field),
    ))


def insert_line_edit(
    source: bytes,
    statements: Sequence[ScriptNode],
    region: ByteSpan,
    body: bytes,
    line: str,
    *,
    anchor: ScriptNode | None,
) -> Edit:
    """Edit adding ``line`` on its own line after anchor's line or at body end."""
    if anchor is not None:
        rel_end = anchor.span.end - region.start
        offset = body.find(b"\n", rel_end)
        if offset == -1:
            offset = len(body)
        indent = line_indent(source, anchor.span.start)
    else:
        offset = len(body.rstrip())
        indent = (
            line_indent(source, statements[0].span.start)
            if statements else _DEFAULT_INDENT
        )
    return Edit(offset=offset, length=0, replacement=f"\n{indent}{line}")


def remove_matching(
    source: bytes,
    statements: Sequence[ScriptNode],
    region: ByteSpan,
    target_value: str,
    *,
    receiver: str | None = None,
) -> list[Edit]:
    """Edits deleting every dependency declaration naming target_value.

    Each edit covers the declaration's full line(s), trailing newline
    included. When ``receiver`` is given only calls on that receiver count.
    """
    body = source[region.start:region.end]
    edits: list[Edit] = []
    for node in statements:
        if node.shape != "dependency":
            continue
        if receiver is not None and node.receiver != receiver:
            continue
        if node.first_argument != target_value:
            continue
        edits.append(line_removal_edit(body, node.span, region))
    return edits


def line_removal_edit(body: bytes, span: ByteSpan, region: ByteSpan) -> Edit:
    """Edit deleting the whole line(s) a span occupies within body.

    The trailing newline goes with the line. On a last line without one, the
    preceding newline goes instead so no blank line is left behind.
    """
    rel_start = span.start - region.start
    rel_end = span.end - region.start
    line_start = body.rfind(b"\n", 0, rel_start) + 1
    line_end = body.find(b"\n", rel_end)
    if line_end == -1:
        line_end = len(body)
        if line_start > 0:
            line_start -= 1
    else:
        line_end += 1
    return Edit(offset=line_start, length=line_end - line_start, replacement="")


def apply_edits(body: bytes, edits: Sequence[Edit]) -> bytes:
    """Apply edits from the highest offset down, skipping invalid ones.

    Edits sharing an offset land in the order given, so several insertions
    after the same anchor keep their relative order.
    """
    valid = [
        (pos, e) for pos, e in enumerate(edits)
        if _is_valid(e, len(body))
    ]
    out = body
    for _, edit in sorted(valid, key=lambda p: (p[1].offset, p[0]), reverse=True):
        if edit.offset + edit.length > len(out):
            continue
        out = (
            out[:edit.offset]
            + edit.replacement.encode("utf-8")
            + out[edit.offset + edit.length:]
        )
    return out


def reassemble(
    source: bytes, call: ByteSpan, region: ByteSpan, new_body: bytes,
) -> bytes:
    """Swap the body region of an enclosing call, keeping all other bytes."""
    return (
        source[:call.start]
        + source[call.start:region.start]
        + new_body
        + source[region.end:call.end]
        + source[call.end:]
    )


def line_indent(source: bytes, offset: int) -> str:
    """Leading whitespace of the line containing offset."""
    line_start = source.rfind(b"\n", 0, offset) + 1
    prefix = source[line_start:offset]
    stripped = prefix.lstrip(b" \t")
    return prefix[:len(prefix) - len(stripped)].decode("utf-8")


def _same_value(existing: LiteralValue, value: FieldValue) -> bool:
    if isinstance(existing, str) or isinstance(value, str):
        return existing == value
    return tuple(existing) == tuple(str(v) for v in value if v is not None)


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    escaped = _INTERPOLATION_RE.sub(r"\\#", escaped)
    return f'"{escaped}"'


def _is_valid(edit: Edit, size: int) -> bool:
    if edit.offset is None or edit.length is None or edit.replacement is None:
        return False
    if edit.offset < 0 or edit.length < 0:
        return False
    return edit.offset + edit.length <= size
