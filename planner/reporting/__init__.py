"""Plan reporting: dict, text, YAML and JSON renderings of command trees."""

from planner.reporting.plan_report import (
    PlanReporter,
    command_to_dict,
    plan_to_lines,
)

__all__ = [
    "PlanReporter",
    "command_to_dict",
    "plan_to_lines",
]
