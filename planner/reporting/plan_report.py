"""Plan output for command trees.

Renders an ordered command tree as a nested dict (for YAML or JSON plan
files) or as indented text for the console. Output carries no
timestamps so that identical inputs produce identical plan files.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from planner.model.command import Command

EXPLICIT_MARKER = "*"


def command_to_dict(command: Command) -> dict[str, Any]:
    """Convert a command and its subtree to a nested dict."""
    data: dict[str, Any] = {
        "id": command.id,
        "name": command.name,
        "order": command.test.order,
        "explicit": command.is_explicit,
    }
    if command.dependency_ids:
        data["dependencies"] = list(command.dependency_ids)
    if command.children:
        data["children"] = [command_to_dict(child) for child in command.children]
    return data


def plan_to_lines(root: Command) -> list[str]:
    """Render a command tree as indented lines in execution order.

    Explicit commands are marked with '*'; dependencies follow '<-'.
    """
    lines: list[str] = []

    def visit(command: Command, depth: int) -> None:
        marker = EXPLICIT_MARKER if command.is_explicit else " "
        line = f"{'  ' * depth}{marker} {command.name}"
        if command.id != command.name:
            line += f" [{command.id}]"
        if command.dependency_ids:
            line += f" <- {', '.join(command.dependency_ids)}"
        lines.append(line)
        for child in command.children:
            visit(child, depth + 1)

    visit(root, 0)
    return lines


class PlanReporter:
    """Collects a command tree and the request that produced it, and
    writes plan files.
    """

    def __init__(self) -> None:
        self.root: Command | None = None
        self.filter_expr: str = ""
        self.exact_filter: bool = False
        self.excluded_dependencies: str = "drop"

    def set_plan(self, root: Command | None) -> None:
        """Set the planned command tree (None if nothing was selected)."""
        self.root = root

    def set_request(
        self,
        filter_expr: str,
        exact_filter: bool,
        excluded_dependencies: str,
    ) -> None:
        """Record the selection settings the plan was built with."""
        self.filter_expr = filter_expr
        self.exact_filter = exact_filter
        self.excluded_dependencies = excluded_dependencies

    def generate_report(self) -> dict[str, Any]:
        """Generate the plan data structure.

        Returns:
            Dictionary suitable for YAML or JSON serialization.
        """
        commands = self.root.all_commands() if self.root is not None else []
        plan: dict[str, Any] = {
            "filter": self.filter_expr,
            "exact_filter": self.exact_filter,
            "excluded_dependencies": self.excluded_dependencies,
            "summary": {
                "total": len(commands),
                "explicit": sum(1 for c in commands if c.is_explicit),
                "with_dependencies": sum(1 for c in commands if c.dependency_ids),
            },
            "execution_order": [c.id for c in commands],
            "root": command_to_dict(self.root) if self.root is not None else None,
        }
        return {"plan": plan}

    def write_yaml(self, path: Path) -> None:
        """Write the plan as a YAML file.

        Args:
            path: File path to write the YAML plan to.
        """
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(
                report,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

    def write_json(self, path: Path) -> None:
        """Write the plan as a JSON file."""
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(report, f, indent=2)
            f.write("\n")

    def write_text(self, path: Path) -> None:
        """Write the plan as indented text."""
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = plan_to_lines(self.root) if self.root is not None else []
        path.write_text("\n".join(lines) + "\n")

    def write(self, path: Path, output_format: str) -> None:
        """Write the plan in the given format (yaml, json or text)."""
        if output_format == "yaml":
            self.write_yaml(path)
        elif output_format == "json":
            self.write_json(path)
        elif output_format == "text":
            self.write_text(path)
        else:
            raise ValueError(f"Unknown output format: {output_format}")
