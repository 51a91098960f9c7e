"""Tests for scaffold_sync.text_normalize module."""
from scaffold_sync.text_normalize import (
    collapse_magic_comments,
    ensure_trailing_newline,
    normalize_heading_spacing,
    normalize_newlines,
)


class TestNewlines:
    def test_crlf_and_cr(self) -> None:
        assert normalize_newlines("a\r\nb\rc\n") == "a\nb\nc\n"

    def test_trailing_newline(self) -> None:
        assert ensure_trailing_newline("x") == "x\n"
        assert ensure_trailing_newline("x\n\n\n") == "x\n"
        assert ensure_trailing_newline("") == ""
        assert ensure_trailing_newline(None) == ""


class TestMagicComments:
    def test_duplicates_collapsed(self) -> None:
        text = (
            "# frozen_string_literal: true\n"
            "\n"
            "# frozen_string_literal: true\n"
            "# encoding: utf-8\n"
            "\n"
            "\n"
            "require 'x'\n"
        )
        assert collapse_magic_comments(text) == (
            "# frozen_string_literal: true\n"
            "# encoding: utf-8\n"
            "\n"
            "require 'x'\n"
        )

    def test_only_leading_block_touched(self) -> None:
        text = "require 'x'\n# frozen_string_literal: true\n"
        assert collapse_magic_comments(text) == text

    def test_magic_comments_only(self) -> None:
        text = "# frozen_string_literal: true\n# frozen_string_literal: true\n"
        assert collapse_magic_comments(text) == "# frozen_string_literal: true\n"


class TestHeadingSpacing:
    def test_blank_lines_around_headings(self) -> None:
        text = "# Title\nintro\n## Next\n\n\n\nbody\n"
        assert normalize_heading_spacing(text) == "# Title\n\nintro\n\n## Next\n\nbody\n"

    def test_fenced_headings_untouched(self) -> None:
        text = "```\n# comment\ncode\n```\n"
        assert normalize_heading_spacing(text) == text
