"""Entry point for the test planner.

Loads a test tree manifest, selects tests with a filter expression, orders
them by their declared dependencies, prints the execution plan and
optionally writes it to a plan file. Nothing is executed.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml

from planner.commands.dependencies import ERROR
from planner.commands.factory import build_commands
from planner.config import VALID_OUTPUT_FORMATS, PlannerConfig
from planner.filters.parser import FilterParseError, parse_filter_set
from planner.model.command import Command
from planner.model.errors import DependencyError
from planner.model.tree import TestTree
from planner.reporting.plan_report import PlanReporter, plan_to_lines


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Test planner - orders selected tests by their dependencies"
    )
    parser.add_argument(
        "--manifest",
        required=True,
        type=Path,
        help="Path to the test tree manifest (JSON, or YAML with a .yaml/.yml suffix)",
    )
    parser.add_argument(
        "--filter",
        type=str,
        default=None,
        help="Filter set expression, e.g. \"Name: A2 or Category: smoke\" "
             "(default: from config, empty = all tests)",
    )
    parser.add_argument(
        "--exact",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Matched tests do not pull in their descendants "
             "(default: from config, off)",
    )
    parser.add_argument(
        "--strict-dependencies",
        action="store_true",
        default=False,
        help="Fail if a selected test depends on a test that was not selected",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="Path to the .test_plan_config JSON file",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write the plan file",
    )
    parser.add_argument(
        "--format",
        choices=sorted(VALID_OUTPUT_FORMATS),
        default=None,
        help="Plan file format (default: from config, yaml)",
    )
    return parser.parse_args(argv)


def load_manifest(path: Path) -> dict[str, Any]:
    """Load a test tree manifest from JSON or YAML.

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: If the file cannot be read.
        ValueError: If the file cannot be parsed or is not a mapping.
    """
    text = path.read_text()
    if path.suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in manifest: {e}")
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in manifest: {e}")
    if not isinstance(data, dict):
        raise ValueError("Manifest must be a mapping")
    return data


def _print_plan(root: Command) -> None:
    """Print the execution plan and a summary."""
    commands = root.all_commands()
    explicit = sum(1 for c in commands if c.is_explicit)
    print("Execution plan (* = explicitly selected):")
    for line in plan_to_lines(root):
        print(f"  {line}")
    print()
    print(f"Planned: {len(commands)} tests, {explicit} explicit")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    config = PlannerConfig(args.config_file)
    try:
        output_format = args.format or config.output_format
        excluded_dependencies = (
            ERROR if args.strict_dependencies else config.excluded_dependencies
        )
        exact_filter = args.exact if args.exact is not None else config.exact_filter
    except ValueError as e:
        print(f"Error: Invalid config: {e}", file=sys.stderr)
        return 1
    filter_expr = args.filter if args.filter is not None else config.filter

    # Load manifest
    try:
        manifest = load_manifest(args.manifest)
    except FileNotFoundError:
        print(f"Error: Manifest file not found: {args.manifest}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: Cannot read manifest {args.manifest}: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        tree = TestTree.from_manifest(manifest)
    except ValueError as e:
        print(f"Error building test tree: {e}", file=sys.stderr)
        return 1

    try:
        filter_set = parse_filter_set(filter_expr)
    except FilterParseError as e:
        print(f"Error: Invalid filter: {e}", file=sys.stderr)
        return 1

    try:
        root = build_commands(
            tree,
            filter_set,
            exact_filter=exact_filter,
            excluded_dependencies=excluded_dependencies,
        )
    except DependencyError as e:
        print(f"Error: Invalid test dependencies ({e.kind.value}): {e}", file=sys.stderr)
        return 1

    if root is None:
        print("No tests selected.")
    else:
        _print_plan(root)

    if args.output:
        reporter = PlanReporter()
        reporter.set_request(filter_expr, exact_filter, excluded_dependencies)
        reporter.set_plan(root)
        try:
            reporter.write(args.output, output_format)
        except OSError as e:
            print(f"Error: Cannot write plan file {args.output}: {e}", file=sys.stderr)
            return 1
        print(f"Plan written to: {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
