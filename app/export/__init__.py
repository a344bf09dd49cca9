"""
Document export for completed analyses.
"""

from .renderer import (
    EXPORT_FORMATS,
    render_markdown,
    render_html,
    render_pdf,
    export_submission,
    export_filename,
)

__all__ = [
    "EXPORT_FORMATS",
    "render_markdown",
    "render_html",
    "render_pdf",
    "export_submission",
    "export_filename",
]
