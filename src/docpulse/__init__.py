"""Client-side state reconciliation for the document analysis dashboard."""

__version__ = "0.2.0"
