#!/usr/bin/env python3
"""
CLI entrypoint for mplens

Subcommands:
  - list-unused: report files that nothing in the mini-program reaches
  - graph:       write the project structure graph (dot/svg/png/json)
  - init:        generate an example mplens.yaml
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .errors import MplensError
from .log_setup import configure_logging


def _comma_list(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


def _parse_aliases(parser: argparse.ArgumentParser, items: Optional[List[str]]) -> Optional[Dict[str, str]]:
    if not items:
        return None
    out: Dict[str, str] = {}
    for item in items:
        key, sep, target = item.partition("=")
        if not sep or not key.strip() or not target.strip():
            parser.error(f"--alias expects KEY=PATH, got {item!r}")
        out[key.strip()] = target.strip()
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mplens", description="Mini-program dependency and unused-file analysis")
    parser.add_argument("--project", default=".", help="Project root (default: current directory)")
    parser.add_argument("--miniapp-root", default=None, help="Mini-program source directory, relative to the project root")
    parser.add_argument("--entry-file", default=None, help="Entry manifest, relative to the mini-program root")
    parser.add_argument("--config", default=None, help="Config file (default: auto-detect in the project root)")
    parser.add_argument("--types", default=None, help="Comma-separated file types to inventory, e.g. js,ts,wxml")
    parser.add_argument("--exclude", action="append", default=None, help="Glob to exclude (repeatable)")
    parser.add_argument("--essential-files", default=None, help="Comma-separated files never reported as unused")
    parser.add_argument("--include-assets", action="store_true", default=None, help="Report unused images too")
    parser.add_argument("--keep-assets", action="append", default=None, help="Glob of assets to keep (repeatable)")
    parser.add_argument("--alias", action="append", default=None, metavar="KEY=PATH", help="Import alias (repeatable)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv, -vvv)")

    sub = parser.add_subparsers(dest="cmd")

    p_unused = sub.add_parser("list-unused", help="List files not reachable from the entry manifest")
    p_unused.add_argument("--format", choices=["text", "json"], default="text")
    p_unused.add_argument("--output", default=None, help="Write the report to a file instead of stdout")

    p_graph = sub.add_parser("graph", help="Write the project structure graph")
    p_graph.add_argument("--format", choices=["dot", "svg", "png", "json"], default="svg")
    p_graph.add_argument("--output", default="mplens-graph", help="Output base path (default: mplens-graph)")

    p_init = sub.add_parser("init", help="Generate an example mplens.yaml")
    p_init.add_argument("--force", action="store_true", help="Overwrite existing mplens.yaml if present")
    return parser


def _run_analysis(parser: argparse.ArgumentParser, args: argparse.Namespace):
    # Lazy import to keep base CLI import time minimal
    from .analyzer import analyze_with_config
    from .config_loader import load_config

    project_root = Path(args.project).resolve()
    config = load_config(Path(args.config) if args.config else None, project_root)
    return analyze_with_config(
        project_root,
        config,
        miniapp_root=args.miniapp_root,
        entry_file=args.entry_file,
        file_types=_comma_list(args.types),
        exclude=args.exclude,
        essential_files=_comma_list(args.essential_files),
        include_assets=args.include_assets,
        keep_assets=args.keep_assets,
        aliases=_parse_aliases(parser, args.alias),
    )


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        print(f"Report written to {output}", file=sys.stderr)
    else:
        sys.stdout.write(text)


def _cmd_list_unused(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    result = _run_analysis(parser, args)
    project_root = Path(args.project).resolve()
    rel = [Path(os.path.relpath(p, project_root)).as_posix() for p in result.unused_files]

    if args.format == "json":
        text = json.dumps({"unusedFiles": rel, "summary": result.summary()}, indent=2, ensure_ascii=False) + "\n"
    elif rel:
        text = "".join(f"{p}\n" for p in rel)
    else:
        text = "No unused files found.\n"
    _emit(text, args.output)
    return 0


def _cmd_graph(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    from .graphviz_render import render_structure_graph, write_json_graph

    result = _run_analysis(parser, args)
    if args.format == "json":
        path = args.output if args.output.endswith(".json") else f"{args.output}.json"
        write_json_graph(result.structure, path)
        print(f"Graph written to {path}")
        return 0

    dot_path, out_path = render_structure_graph(result.structure, args.output, fmt=args.format)
    print(f"DOT written to {dot_path}")
    if args.format != "dot":
        if out_path:
            print(f"Graph rendered to {out_path}")
        else:
            print("Graphviz 'dot' executable not found; only the DOT file was written.", file=sys.stderr)
    return 0


def _cmd_init(args: argparse.Namespace) -> int:
    from .config_loader import save_example_config

    target = Path(args.project) / "mplens.yaml"
    try:
        path = save_example_config(target, force=args.force)
    except FileExistsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Created {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 0

    configure_logging(args.verbose)

    try:
        if args.cmd == "init":
            return _cmd_init(args)
        if args.cmd == "list-unused":
            return _cmd_list_unused(parser, args)
        if args.cmd == "graph":
            return _cmd_graph(parser, args)
    except (MplensError, FileNotFoundError, ValueError, ImportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
