"""Tests for scaffold_sync.dispatch module."""
import pytest

from scaffold_sync.dispatch import detect_file_kind, merge_file
from scaffold_sync.merge_config import MergeConfig
from scaffold_sync.template_results import TemplateResults

GEMSPEC_TEMPLATE = """\
# frozen_string_literal: true
# frozen_string_literal: true

Gem::Specification.new do |spec|
  spec.name = "template_gem"
  spec.version = "0.1.0"
  spec.add_dependency "my_gem"
  spec.add_dependency "rake"
end
"""


EXISTING_GEMSPEC = """\
Gem::Specification.new do |spec|
  spec.name = "my_gem"
  spec.version = "1.2.3"
  spec.summary = "Reconciles project files"
  spec.authors = ["Ada", "Grace"]
end
"""

PLACEHOLDER_GEMSPEC = """\
Gem::Specification.new do |spec|
  spec.name = "template_gem"
  spec.version = "0.1.0"
  spec.summary = "🍲"
  spec.authors = ["Template Author"]
end
"""


class _KeepDestination:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def merge(self, template: str, destination: str) -> str:
        self.calls.append((template, destination))
        return destination


class TestDetectFileKind:
    @pytest.mark.parametrize(
        ("path", "kind"),
        [
            ("CHANGELOG.md", "changelog"),
            ("docs/README.md", "markdown"),
            ("guide.markdown", "markdown"),
            ("my_gem.gemspec", "gemspec"),
            ("Gemfile", "gemfile"),
            ("gemfiles/rails_7.gemfile", "gemfile"),
            ("Appraisals", "appraisals"),
            ("Gemfile.lock", "other"),
            ("Rakefile", "other"),
        ],
    )
    def test_kinds(self, path: str, kind: str) -> None:
        assert detect_file_kind(path) == kind


class TestMergeFile:
    def test_markdown_merge_recorded(self) -> None:
        results = TemplateResults()
        merged = merge_file(
            "README.md",
            "# T\n\n## Synopsis\n\ntpl\n",
            "# Mine\n\n## Synopsis\n\nmine\n",
            results=results,
        )
        assert merged == "# Mine\n\n## Synopsis\n\nmine\n"
        assert results.entries()["README.md"].action == "unchanged"

    def test_changelog_merge(self) -> None:
        results = TemplateResults()
        merged = merge_file(
            "CHANGELOG.md",
            "# Changelog\n\n## [Unreleased]\n### Added\n",
            "## [Unreleased]\n### Added\n- thing\n",
            results=results,
        )
        assert "### Added\n- thing\n### Changed\n" in merged
        assert results.entries()["CHANGELOG.md"].action == "merge"

    def test_create_when_destination_missing(self) -> None:
        results = TemplateResults()
        assert merge_file("README.md", "# T", None, results=results) == "# T\n"
        assert results.entries()["README.md"].action == "create"

    def test_other_files_take_template(self) -> None:
        results = TemplateResults()
        assert merge_file("Rakefile", "task :x\n", "old\n", results=results) == "task :x\n"
        assert results.entries()["Rakefile"].action == "replace"
        merge_file("Rakefile", "task :x\n", "task :x", results=results)
        assert results.entries()["Rakefile"].action == "unchanged"

    def test_crlf_normalized(self) -> None:
        merged = merge_file(
            "notes.md",
            "# A\r\n\r\n## Synopsis\r\n\r\ntpl\r\n",
            "# B\r\n\r\n## Synopsis\r\n\r\nmine\r\n",
        )
        assert merged == "# B\n\n## Synopsis\n\nmine\n"

    def test_gemspec_self_dependency_and_magic_comments(self) -> None:
        merged = merge_file(
            "my_gem.gemspec", GEMSPEC_TEMPLATE, "old\n", gem_name="my_gem",
        )
        assert merged.count("# frozen_string_literal: true") == 1
        assert 'spec.add_dependency "my_gem"' not in merged
        assert 'spec.add_dependency "rake"' in merged

    def test_gemspec_field_values(self) -> None:
        merged = merge_file(
            "my_gem.gemspec",
            GEMSPEC_TEMPLATE,
            None,
            gem_name="my_gem",
            field_values={"name": "my_gem", "homepage": None},
        )
        assert '  spec.name = "my_gem"\n' in merged
        assert 'spec.add_dependency "my_gem"' not in merged

    def test_node_merger_runs_first_for_scripts(self) -> None:
        merger = _KeepDestination()
        merged = merge_file(
            "Gemfile",
            'gem "rake"\n',
            'gem "rake"\ngem "my_gem"\ngem "pry"\n',
            gem_name="my_gem",
            node_merger=merger,
        )
        assert merged == 'gem "rake"\ngem "pry"\n'
        assert len(merger.calls) == 1

    def test_node_merger_skipped_without_destination(self) -> None:
        merger = _KeepDestination()
        merged = merge_file("Gemfile", 'gem "rake"\n', None, node_merger=merger)
        assert merged == 'gem "rake"\n'
        assert merger.calls == []

    def test_heading_spacing_opt_in(self) -> None:
        config = MergeConfig(heading_spacing=True)
        assert merge_file("README.md", "# T\nx\n", None, config=config) == "# T\n\nx\n"
        assert merge_file("README.md", "# T\nx\n", None) == "# T\nx\n"

    def test_gemspec_fields_carried_from_destination(self) -> None:
        results = TemplateResults()
        merged = merge_file(
            "my_gem.gemspec", PLACEHOLDER_GEMSPEC, EXISTING_GEMSPEC, results=results,
        )
        assert merged == (
            "Gem::Specification.new do |spec|\n"
            '  spec.name = "my_gem"\n'
            '  spec.version = "0.1.0"\n'
            '  spec.summary = "Reconciles project files"\n'
            '  spec.authors = ["Ada", "Grace"]\n'
            "end\n"
        )
        assert results.entries()["my_gem.gemspec"].action == "merge"

    def test_explicit_field_values_skip_carry_over(self) -> None:
        merged = merge_file(
            "my_gem.gemspec", PLACEHOLDER_GEMSPEC, EXISTING_GEMSPEC,
            field_values={"name": "renamed"},
        )
        assert '  spec.name = "renamed"\n' in merged
        assert '  spec.summary = "🍲"\n' in merged

    def test_readme_h1_emoji_synced_to_gemspec(self) -> None:
        merged = merge_file(
            "README.md",
            "# 🍲 Template\n\n## Install\n\nsteps\n",
            "# 🍲🚀 My Gem\n\n## Install\n\nold\n",
            gemspec_content=(
                'Gem::Specification.new do |spec|\n  spec.summary = "💎 Gem"\nend\n'
            ),
        )
        assert merged == "# 💎 My Gem\n\n## Install\n\nsteps\n"

    def test_emoji_sync_only_for_readme(self) -> None:
        merged = merge_file(
            "docs/guide.md",
            "# 🍲 Guide\n",
            None,
            gemspec_content=(
                'Gem::Specification.new do |spec|\n  spec.summary = "💎 Gem"\nend\n'
            ),
        )
        assert merged == "# 🍲 Guide\n"
