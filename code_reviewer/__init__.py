"""Automated pull request reviews driven by diff scanning and a generative review service."""

__version__ = "1.0.0"
