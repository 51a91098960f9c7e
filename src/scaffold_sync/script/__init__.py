"""Byte-exact editing of Ruby build scripts (gemspecs, Gemfiles, Appraisals)."""

from scaffold_sync.script.gemspec import (
    ensure_development_dependencies,
    extract_gemspec_emoji,
    extract_gemspec_fields,
    extract_leading_emoji,
    find_spec_call,
    remove_gem_dependency,
    remove_spec_dependency,
    replace_gemspec_fields,
    sync_readme_h1_emoji,
)
from scaffold_sync.script.ruby import RubyScriptParser
from scaffold_sync.script.splicer import (
    Edit,
    SpliceSkip,
    apply_edits,
    body_region,
    build_literal,
    is_placeholder,
    reassemble,
    remove_matching,
    replace_fields,
)
from scaffold_sync.script.types import (
    ByteSpan,
    NodeMerger,
    ParseFailure,
    ScriptBlock,
    ScriptNode,
    ScriptParser,
    ScriptTree,
)

__all__ = [
    "ByteSpan",
    "Edit",
    "NodeMerger",
    "ParseFailure",
    "RubyScriptParser",
    "ScriptBlock",
    "ScriptNode",
    "ScriptParser",
    "ScriptTree",
    "SpliceSkip",
    "apply_edits",
    "body_region",
    "build_literal",
    "ensure_development_dependencies",
    "extract_gemspec_emoji",
    "extract_gemspec_fields",
    "extract_leading_emoji",
    "find_spec_call",
    "is_placeholder",
    "reassemble",
    "remove_gem_dependency",
    "remove_matching",
    "remove_spec_dependency",
    "replace_fields",
    "replace_gemspec_fields",
    "sync_readme_h1_emoji",
]
