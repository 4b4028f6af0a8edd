"""
ContrastLens backend.

Dominant color extraction and WCAG contrast analysis for uploaded images.
"""

__version__ = "1.0.0"
