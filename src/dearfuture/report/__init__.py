"""
Reporting module for Dear Future.

Renders capsules and statistics for people and for scripts.

Output formats:
    - Console: Rich tables and panels, colored by capsule status and color
    - JSON: Structured output for programmatic consumption

Both formats hide the message of capsules that have not been opened.

Example:
    from dearfuture.report import render_capsule_table, generate_capsules_json

    render_capsule_table(service.locked_capsules(), console, title="Locked")
    print(generate_capsules_json(service.locked_capsules(), "locked"))
"""

from dearfuture.report.console import render_capsule, render_capsule_table, render_statistics
from dearfuture.report.json import capsule_to_dict, generate_capsules_json, generate_statistics_json

__all__ = [
    "render_capsule",
    "render_capsule_table",
    "render_statistics",
    "capsule_to_dict",
    "generate_capsules_json",
    "generate_statistics_json",
]
