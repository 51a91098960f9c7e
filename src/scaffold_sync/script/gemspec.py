"""Gemspec, Gemfile and Appraisals edits built on the splicer.

Every editing function takes and returns file content as text. Any failure
(unparseable source, no ``Gem::Specification.new`` block, unexpected error)
returns the input unchanged; the cause is logged at debug level. The readers
(``extract_gemspec_fields``, ``extract_gemspec_emoji``) return an empty result
instead.
"""
from __future__ import annotations

import logging
from collections.abc import Collection, Mapping

import regex

from scaffold_sync.merge_config import DEFAULT_CONFIG, MergeConfig
from scaffold_sync.merge_types import Err, Ok, Section
from scaffold_sync.script.ruby import RubyScriptParser
from scaffold_sync.script.splicer import (
    Edit,
    FieldValue,
    apply_edits,
    body_region,
    find_field_node,
    insert_line_edit,
    remove_matching,
    reassemble,
    replace_fields,
)
from scaffold_sync.script.types import (
    ByteSpan,
    ScriptNode,
    ScriptParser,
    ScriptTree,
    walk_statements,
)
from scaffold_sync.sections import find_section, parse_sections

logger = logging.getLogger(__name__)

SPEC_RECEIVER = "Gem::Specification"
DEFAULT_BLOCK_PARAM = "spec"

_ENSURE_MATCH_METHODS = frozenset({"add_development_dependency", "add_dependency"})

# Fields an existing gemspec keeps when the template is re-applied.
CARRY_OVER_FIELDS: tuple[str, ...] = (
    "name",
    "authors",
    "email",
    "summary",
    "description",
    "licenses",
    "required_ruby_version",
    "require_paths",
    "bindir",
    "executables",
)
# Searched in order for the gem's emoji.
EMOJI_FIELDS: tuple[str, ...] = ("summary", "description")

_GRAPHEME_RE = regex.compile(r"\X")
_EMOJI_RE = regex.compile(r"\p{Emoji_Presentation}|\p{Extended_Pictographic}\uFE0F")


def find_spec_call(tree: ScriptTree) -> ScriptNode | None:
    """The ``Gem::Specification.new do |x| ... end`` call, or None."""
    for node in walk_statements(tree.statements):
        if (
            node.shape == "block_call"
            and node.name == "new"
            and node.receiver is not None
            and node.receiver.lstrip(":") == SPEC_RECEIVER
        ):
            return node
    return None


def replace_gemspec_fields(
    content: str,
    replacements: Mapping[str, FieldValue | None],
    *,
    remove_dependency: str | None = None,
    config: MergeConfig | None = None,
    parser: ScriptParser | None = None,
) -> str:
    """Set gemspec fields and optionally drop a dependency on one gem.

    Args:
        content: Gemspec source.
        replacements: Field name to new value (string or list of strings).
            None values are ignored.
        remove_dependency: Gem name whose dependency declarations inside the
            spec block are deleted (typically the gem itself).
        config: Supplies freeform fields and the insertion anchor.
        parser: Script parser; a RubyScriptParser when omitted.

    Returns:
        The edited content, or ``content`` unchanged on any failure.
    """
    cfg = config or DEFAULT_CONFIG
    try:
        source = content.encode("utf-8")
        located = _locate_spec_body(source, parser, cfg)
        if located is None:
            return content
        call, region, receiver = located
        statements = call.block.statements

        edits = replace_fields(
            source, statements, region, receiver, replacements, config=cfg,
        )
        if remove_dependency:
            edits.extend(remove_matching(
                source, statements, region, remove_dependency,
            ))
        return _splice(content, source, call.span, region, edits)
    except Exception:
        logger.debug("replace_gemspec_fields failed", exc_info=True)
        return content


def remove_spec_dependency(
    content: str, gem_name: str, *, parser: ScriptParser | None = None,
) -> str:
    """Delete every dependency on gem_name inside the spec block."""
    return replace_gemspec_fields(
        content, {}, remove_dependency=gem_name, parser=parser,
    )


def ensure_development_dependencies(
    content: str,
    desired: Mapping[str, str],
    *,
    config: MergeConfig | None = None,
    parser: ScriptParser | None = None,
) -> str:
    """Make sure each gem in desired is declared by exactly the given line.

    ``desired`` maps gem name to a full declaration line such as
    ``spec.add_development_dependency("rake", "~> 13.0")``. An existing
    declaration for the gem is rewritten in place; a missing one is inserted
    after the anchor field, or at the end of the block. Without a spec block
    the lines are appended to the file.
    """
    if not desired:
        return content
    cfg = config or DEFAULT_CONFIG
    try:
        source = content.encode("utf-8")
        tree = _parse(source, parser, cfg)
        if tree is None:
            return content
        call = find_spec_call(tree)
        if call is None:
            out = content
            if out and not out.endswith("\n"):
                out += "\n"
            return out + "".join(line.strip() + "\n" for line in desired.values())

        located = _spec_body(source, call)
        if located is None:
            return content
        region, receiver = located
        statements = call.block.statements
        body = source[region.start:region.end]
        anchor = find_field_node(statements, receiver, cfg.anchor_field)

        edits: list[Edit] = []
        for gem_name, line in desired.items():
            wanted = line.strip()
            found = _find_dependency(statements, gem_name)
            if found is None:
                edits.append(insert_line_edit(
                    source, statements, region, body, wanted, anchor=anchor,
                ))
                continue
            current = source[found.span.start:found.span.end].decode("utf-8")
            if current == wanted:
                continue
            edits.append(Edit(
                offset=found.span.start - region.start,
                length=found.span.length,
                replacement=wanted,
            ))
        return _splice(content, source, call.span, region, edits)
    except Exception:
        logger.debug("ensure_development_dependencies failed", exc_info=True)
        return content


def remove_gem_dependency(
    content: str, gem_name: str, *, parser: ScriptParser | None = None,
) -> str:
    """Delete every ``gem "<gem_name>"`` line of a Gemfile or Appraisals file.

    Declarations nested in ``group``, ``platforms`` or ``appraise`` blocks are
    removed too; the enclosing blocks are kept even when left empty.
    """
    if not gem_name:
        return content
    try:
        source = content.encode("utf-8")
        tree = _parse(source, parser, DEFAULT_CONFIG)
        if tree is None:
            return content
        gem_calls = [
            n for n in walk_statements(tree.statements) if n.name == "gem"
        ]
        whole = ByteSpan(0, len(source))
        edits = remove_matching(source, gem_calls, whole, gem_name)
        if not edits:
            return content
        return apply_edits(source, edits).decode("utf-8")
    except Exception:
        logger.debug("remove_gem_dependency failed", exc_info=True)
        return content


def extract_gemspec_fields(
    content: str,
    fields: Collection[str] = CARRY_OVER_FIELDS,
    *,
    parser: ScriptParser | None = None,
) -> dict[str, FieldValue]:
    """Read the literal values of the named fields from the spec block.

    The result feeds ``replace_gemspec_fields`` when a template is applied
    over an existing gemspec. Computed values (constants, interpolation,
    method calls), blank strings and empty arrays are left out, so a carried
    value never blanks a template field. The first assignment of a field wins.
    """
    try:
        source = content.encode("utf-8")
        located = _locate_spec_body(source, parser, DEFAULT_CONFIG)
        if located is None:
            return {}
        call, _, receiver = located
        values: dict[str, FieldValue] = {}
        for node in call.block.statements:
            if (
                node.shape != "field_assignment"
                or node.receiver != receiver
                or node.name not in fields
                or node.name in values
            ):
                continue
            value = node.value
            if not value or (isinstance(value, str) and not value.strip()):
                continue
            values[node.name] = value
        return values
    except Exception:
        logger.debug("extract_gemspec_fields failed", exc_info=True)
        return {}


def extract_leading_emoji(text: str | None) -> str | None:
    """The first grapheme cluster of text when it is an emoji, else None.

    A cluster counts when it starts with an emoji-presentation character or a
    pictograph followed by VS16, so flags, skin tones and ZWJ sequences come
    back whole while a bare ``©`` does not.
    """
    if not text:
        return None
    cluster = _GRAPHEME_RE.match(text)
    if cluster is None or _EMOJI_RE.match(cluster.group()) is None:
        return None
    return cluster.group()


def extract_gemspec_emoji(
    content: str, *, parser: ScriptParser | None = None,
) -> str | None:
    """The leading emoji of the gemspec summary, else of its description."""
    try:
        source = content.encode("utf-8")
        located = _locate_spec_body(source, parser, DEFAULT_CONFIG)
        if located is None:
            return None
        call, _, receiver = located
        for field in EMOJI_FIELDS:
            node = find_field_node(call.block.statements, receiver, field)
            if node is None or not isinstance(node.value, str):
                continue
            emoji = extract_leading_emoji(node.value.lstrip())
            if emoji is not None:
                return emoji
        return None
    except Exception:
        logger.debug("extract_gemspec_emoji failed", exc_info=True)
        return None


def sync_readme_h1_emoji(
    readme_content: str,
    gemspec_content: str,
    *,
    parser: ScriptParser | None = None,
) -> str:
    """Make the README's first H1 start with the gemspec's emoji.

    Every emoji already leading the title is dropped first, so ``# 🍲🚀 Gem``
    becomes ``# 💎 Gem`` rather than stacking decorations. The README is
    returned unchanged when the gemspec has no emoji or the README has no H1
    outside a fenced block.
    """
    emoji = extract_gemspec_emoji(gemspec_content, parser=parser)
    if emoji is None:
        return readme_content

    index = parse_sections(readme_content)
    idx = find_section(index, _is_h1)
    if idx is None:
        return readme_content

    section = index.sections[idx]
    title = _strip_leading_emoji(section.heading.removeprefix("#"))
    lines = list(index.lines)
    lines[section.start_line] = f"# {emoji} {title}" if title else f"# {emoji}"
    return "\n".join(lines)


def _strip_leading_emoji(text: str) -> str:
    text = text.lstrip()
    while True:
        emoji = extract_leading_emoji(text)
        if emoji is None:
            return text
        text = text[len(emoji):].lstrip()


def _is_h1(section: Section) -> bool:
    return section.level == 1


def _parse(
    source: bytes, parser: ScriptParser | None, config: MergeConfig,
) -> ScriptTree | None:
    active = parser or RubyScriptParser(dependency_methods=config.dependency_methods)
    match active.parse(source):
        case Ok(value=tree):
            return tree
        case Err(error=failure):
            logger.debug("script parse failed: %s", failure.reason)
            return None


def _locate_spec_body(
    source: bytes, parser: ScriptParser | None, config: MergeConfig,
) -> tuple[ScriptNode, ByteSpan, str] | None:
    tree = _parse(source, parser, config)
    if tree is None:
        return None
    call = find_spec_call(tree)
    if call is None:
        logger.debug("no Gem::Specification.new block found")
        return None
    located = _spec_body(source, call)
    if located is None:
        return None
    region, receiver = located
    return call, region, receiver


def _spec_body(source: bytes, call: ScriptNode) -> tuple[ByteSpan, str] | None:
    block = call.block
    if block is None or block.body is None:
        logger.debug("Gem::Specification.new block has no body")
        return None
    return body_region(source, block.body), block.param or DEFAULT_BLOCK_PARAM


def _find_dependency(
    statements: tuple[ScriptNode, ...], gem_name: str,
) -> ScriptNode | None:
    for node in statements:
        if (
            node.shape == "dependency"
            and node.name in _ENSURE_MATCH_METHODS
            and node.first_argument == gem_name
        ):
            return node
    return None


def _splice(
    content: str,
    source: bytes,
    call: ByteSpan,
    region: ByteSpan,
    edits: list[Edit],
) -> str:
    if not edits:
        return content
    body = source[region.start:region.end]
    new_body = apply_edits(body, edits)
    return reassemble(source, call, region, new_body).decode("utf-8")
