"""Report renderers for oc-project-mover runs."""

from .json_report import generate_json_report
from .save import save_report
from .text import format_phase_line, format_route_urls, generate_text_summary

__all__ = [
    "format_phase_line",
    "format_route_urls",
    "generate_text_summary",
    "generate_json_report",
    "save_report",
]
