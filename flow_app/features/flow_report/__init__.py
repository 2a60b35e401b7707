"""Flow report feature module: filtered metrics context for the report pages."""

from flow_app.features.flow_report.context import ReportContext, build_report_context

__all__ = [
    "ReportContext",
    "build_report_context",
]
