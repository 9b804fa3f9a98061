"""Multi-stage research report generation service."""

__version__ = "0.1.0"
