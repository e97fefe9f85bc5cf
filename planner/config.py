"""Planner configuration file management.

Reads and writes the .test_plan_config JSON file holding defaults for the
filter, exact filtering, the excluded dependency policy and the plan
output format. Command-line flags override these values.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from planner.commands.dependencies import VALID_EXCLUDED_DEPENDENCY_POLICIES

DEFAULT_CONFIG_PATH = Path(".test_plan_config")

VALID_OUTPUT_FORMATS = frozenset({"yaml", "json", "text"})

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "filter": "",
    "exact_filter": False,
    "excluded_dependencies": "drop",
    "output_format": "yaml",
}


class PlannerConfig:
    """Manages the .test_plan_config JSON configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def filter(self) -> str:
        """Get the default filter set expression (empty = run everything)."""
        return str(self._data.get("filter") or "")

    @property
    def exact_filter(self) -> bool:
        """Get whether matches exclude their descendants."""
        val = self._data.get("exact_filter", DEFAULT_CONFIG["exact_filter"])
        if not isinstance(val, bool):
            raise ValueError(
                f"Invalid exact_filter {val!r}: must be true or false"
            )
        return val

    @property
    def excluded_dependencies(self) -> str:
        """Get the policy for dependencies on tests that were not selected."""
        val = self._data.get(
            "excluded_dependencies", DEFAULT_CONFIG["excluded_dependencies"]
        )
        if val not in VALID_EXCLUDED_DEPENDENCY_POLICIES:
            raise ValueError(
                f"Invalid excluded_dependencies '{val}': "
                f"must be one of {sorted(VALID_EXCLUDED_DEPENDENCY_POLICIES)}"
            )
        return str(val)

    @property
    def output_format(self) -> str:
        """Get the plan file format."""
        val = self._data.get("output_format", DEFAULT_CONFIG["output_format"])
        if val not in VALID_OUTPUT_FORMATS:
            raise ValueError(
                f"Invalid output_format '{val}': "
                f"must be one of {sorted(VALID_OUTPUT_FORMATS)}"
            )
        return str(val)

    def set_config(
        self,
        filter: str | None = None,
        exact_filter: bool | None = None,
        excluded_dependencies: str | None = None,
        output_format: str | None = None,
    ) -> None:
        """Update configuration values."""
        if filter is not None:
            self._data["filter"] = filter
        if exact_filter is not None:
            self._data["exact_filter"] = exact_filter
        if excluded_dependencies is not None:
            self._data["excluded_dependencies"] = excluded_dependencies
        if output_format is not None:
            self._data["output_format"] = output_format
