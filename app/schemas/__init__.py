"""
app/schemas package marker.
"""

from app.schemas.expansion_report import ExpansionReportDocument, ScrapeResultEntry

__all__ = [
    "ExpansionReportDocument",
    "ScrapeResultEntry",
]
