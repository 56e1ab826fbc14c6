"""
Reporting module for expstore.

Renders store query results for humans and for programs.

Output formats:
    - Console: Rich tables for profiles, events and metrics
    - JSON: one document per query with camelCase record fields

Example:
    from expstore.report import generate_json_report, print_events

    events = await store.query_trial_job_event("t1")
    print_events(console, events)
    print(generate_json_report("events", events))
"""

from expstore.report.console import print_events, print_metrics, print_profiles
from expstore.report.json import build_records_dict, generate_json_report

__all__ = [
    "build_records_dict",
    "generate_json_report",
    "print_events",
    "print_metrics",
    "print_profiles",
]
