#!/usr/bin/env python3
"""Merge one template file into an existing project file.

Usage:
    python3 scripts/template_merge.py --template template/README.md \\
      --destination README.md

    python3 scripts/template_merge.py --template template/my_gem.gemspec \\
      --destination my_gem.gemspec --gem-name my_gem --check

Outputs structured JSON to stdout, human messages to stderr. With --check
nothing is written and the exit status is 1 when the file would change.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from scaffold_sync.dispatch import detect_file_kind, merge_file
from scaffold_sync.io_utils import dump_json, read_text, write_text
from scaffold_sync.merge_config import DEFAULT_CONFIG, ConfigError, MergeConfig
from scaffold_sync.template_results import TemplateResults


def log(msg: str) -> None:
    print(msg, file=sys.stderr)


def emit(obj: object) -> None:
    sys.stdout.buffer.write(dump_json(obj))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reconcile a project file with its template.",
    )
    parser.add_argument("--template", required=True, type=Path,
                        help="Template file (already token-substituted)")
    parser.add_argument("--destination", required=True, type=Path,
                        help="Existing project file (may not exist yet)")
    parser.add_argument("--output", type=Path, default=None,
                        help="Where to write the result (default: --destination)")
    parser.add_argument("--config", type=Path, default=None,
                        help="Merge config JSON (preserved sections, categories...)")
    parser.add_argument("--gem-name", default=None,
                        help="Own gem name; its self-dependency is removed")
    parser.add_argument("--gemspec", type=Path, default=None,
                        help="Project gemspec; a README's H1 emoji follows its summary")
    parser.add_argument("--results", type=Path, default=None,
                        help="Write the per-file results log as JSON")
    parser.add_argument("--check", action="store_true",
                        help="Do not write; exit 1 if the file would change")
    parser.add_argument("--verbose", action="store_true",
                        help="Debug logging on stderr")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    template = read_text(args.template)
    if template is None:
        log(f"Error: template not found: {args.template}")
        return 2

    config = DEFAULT_CONFIG
    if args.config is not None:
        if not args.config.is_file():
            log(f"Error: config not found: {args.config}")
            return 2
        try:
            config = MergeConfig.from_json(args.config)
        except ConfigError as exc:
            log(f"Error: invalid config {args.config}: {exc}")
            return 2

    gemspec_content = None
    if args.gemspec is not None:
        gemspec_content = read_text(args.gemspec)
        if gemspec_content is None:
            log(f"Error: gemspec not found: {args.gemspec}")
            return 2

    destination = read_text(args.destination)
    results = TemplateResults()
    merged = merge_file(
        args.destination,
        template,
        destination,
        config=config,
        results=results,
        gem_name=args.gem_name,
        gemspec_content=gemspec_content,
    )

    entry = results.entries()[str(args.destination)]
    changed = entry.action != "unchanged"
    output = args.output or args.destination

    if args.check:
        log(f"{args.destination}: {'would change' if changed else 'up to date'}")
    elif changed or output != args.destination:
        write_text(output, merged)
        log(f"{args.destination}: {entry.action} -> {output}")
    else:
        log(f"{args.destination}: unchanged")

    if args.results is not None:
        results.write(args.results)

    emit({
        "destination": str(args.destination),
        "output": None if args.check else str(output),
        "kind": detect_file_kind(args.destination),
        "action": entry.action,
        "changed": changed,
        "check": args.check,
    })
    return 1 if args.check and changed else 0


if __name__ == "__main__":
    sys.exit(main())
