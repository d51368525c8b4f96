"""
Reporting module - sorted JSON endpoint reports.
"""

from .report_builder import ReportBuilder, per_domain_path


__all__ = [
    "ReportBuilder",
    "per_domain_path",
]
