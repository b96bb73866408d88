"""Command-line router and its rich rendering layer."""

from crew_planner.ui.cli import CLIError, build_parser, run_cli
from crew_planner.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "run_cli",
]
