"""Startup-idea extraction and document generation with resumable sessions."""

__version__ = "0.1.0"
