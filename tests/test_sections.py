"""Tests for scaffold_sync.sections module."""
import pytest

from scaffold_sync.merge_types import Section, SectionIndex
from scaffold_sync.sections import (
    branch_body,
    branch_end,
    branch_ends,
    find_section,
    heading_level,
    normalize_heading_key,
    opaque_mask,
    parse_sections,
)

README = (
    "# Title\n"
    "\n"
    "intro\n"
    "\n"
    "## Synopsis\n"
    "\n"
    "body\n"
    "\n"
    "### Detail\n"
    "\n"
    "more\n"
    "\n"
    "## Install\n"
    "\n"
    "x\n"
)


class TestParseSections:
    def test_finds_headings_in_order(self) -> None:
        index = parse_sections(README)
        assert [s.start_line for s in index.sections] == [0, 4, 8, 12]
        assert [s.level for s in index.sections] == [1, 2, 3, 2]
        assert [s.key for s in index.sections] == [
            "title", "synopsis", "detail", "install",
        ]

    def test_lines_round_trip(self) -> None:
        index = parse_sections(README)
        assert "\n".join(index.lines) == README
        assert index.line_count == 16

    def test_none_gives_empty_index(self) -> None:
        index = parse_sections(None)
        assert index.sections == ()
        assert index.line_count == 0

    def test_headings_inside_backtick_fence_ignored(self) -> None:
        doc = "## Real\n```\n# not a heading\n```\n## Also\n"
        assert [s.key for s in parse_sections(doc).sections] == ["real", "also"]

    def test_headings_inside_tilde_fence_ignored(self) -> None:
        doc = "## Real\n~~~ruby\n# comment\n~~~\n## Also\n"
        assert [s.key for s in parse_sections(doc).sections] == ["real", "also"]

    def test_unterminated_fence_hides_rest(self) -> None:
        doc = "## A\n```\n## B\n## C\n"
        assert [s.key for s in parse_sections(doc).sections] == ["a"]

    def test_hash_without_space_is_not_heading(self) -> None:
        doc = "#hashtag\n## Real\n"
        assert [s.key for s in parse_sections(doc).sections] == ["real"]


class TestHeadingHelpers:
    def test_heading_level(self) -> None:
        assert heading_level("### Three") == 3
        assert heading_level("#nospace") is None
        assert heading_level("plain") is None

    def test_key_strips_decoration(self) -> None:
        assert normalize_heading_key("## 🚀 Basic  Usage") == "basic usage"
        assert normalize_heading_key("##   Configuration ") == "configuration"
        assert normalize_heading_key("## Note: Windows").startswith("note:")

    def test_opaque_mask_marks_fence_lines(self) -> None:
        lines = ["a", "```", "b", "```", "c"]
        assert opaque_mask(lines) == (False, True, True, True, False)


class TestBranches:
    def test_branch_end_includes_subsections(self) -> None:
        index = parse_sections(README)
        # Synopsis owns its ### Detail subsection
        assert branch_end(index.sections, 1, index.line_count) == 11
        assert branch_end(index.sections, 2, index.line_count) == 11
        assert branch_end(index.sections, 3, index.line_count) == 15
        assert branch_end(index.sections, 0, index.line_count) == 15

    def test_branch_ends_matches_branch_end(self) -> None:
        index = parse_sections(README)
        expected = tuple(
            branch_end(index.sections, i, index.line_count)
            for i in range(len(index.sections))
        )
        assert branch_ends(index.sections, index.line_count) == expected

    def test_branch_ends_deep_nesting(self) -> None:
        doc = "# A\n## B\n### C\n#### D\n## E\n# F\n"
        index = parse_sections(doc)
        assert branch_ends(index.sections, index.line_count) == (4, 3, 3, 3, 4, 6)

    def test_branch_body(self) -> None:
        index = parse_sections(README)
        body = branch_body(index, 1)
        assert body == ["", "body", "", "### Detail", "", "more", ""]

    def test_find_section(self) -> None:
        index = parse_sections(README)
        assert find_section(index, lambda s: s.key == "install") == 3
        assert find_section(index, lambda s: s.key == "missing") is None


class TestInvariants:
    def test_section_rejects_negative_line(self) -> None:
        with pytest.raises(ValueError):
            Section(start_line=-1, level=1, heading="# x", key="x")

    def test_section_rejects_zero_level(self) -> None:
        with pytest.raises(ValueError):
            Section(start_line=0, level=0, heading="x", key="x")

    def test_index_rejects_unordered_sections(self) -> None:
        a = Section(start_line=3, level=2, heading="## a", key="a")
        b = Section(start_line=1, level=2, heading="## b", key="b")
        with pytest.raises(ValueError):
            SectionIndex(lines=("",) * 5, sections=(a, b), line_count=5)
