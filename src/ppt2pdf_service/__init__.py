"""
PowerPoint to PDF conversion service package.

This module provides a FastAPI application exposing `POST /api/convert`,
which hands uploaded decks to Google Drive for conversion and streams the
exported PDF back, plus a Streamlit front-end for it.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
