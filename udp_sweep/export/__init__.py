"""Export module for writing sweep reports."""

from .json_exporter import JSONExporter
from .report import ReportGenerator, format_cell, summary_line

__all__ = [
    "JSONExporter",
    "ReportGenerator",
    "format_cell",
    "summary_line",
]
