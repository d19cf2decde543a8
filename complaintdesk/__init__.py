"""Hostel complaint desk: AI-assisted complaint structuring and Q&A."""

__version__ = "0.1.0"
