"""
Launch Contact Harvester - Diagnostics Module

Best-effort screenshot capture for failed, challenged and blocked pages.
"""

from .capture import DiagnosticsCapture

__all__ = ['DiagnosticsCapture']
