"""
app/services package marker.
"""

from app.services.expansion_service import ExpansionService

__all__ = ["ExpansionService"]
