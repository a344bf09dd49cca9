"""
Export a completed analysis as a downloadable document.

Markdown is the source format for the generated analysis; HTML renders it
with ``markdown`` and inserts the title and submitted text as escaped text.
PDF is laid out from that HTML with PyMuPDF's Story API.
"""

import io
import logging
import re

import markdown
import pymupdf
from markupsafe import escape

from app.submission_store import Submission

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    "md": "text/markdown; charset=utf-8",
    "html": "text/html; charset=utf-8",
    "pdf": "application/pdf",
}

EXPORT_CSS = """
body { font-family: sans-serif; font-size: 11pt; }
h1 { font-size: 18pt; }
h3 { font-size: 13pt; margin-top: 12pt; }
"""

PAGE_MARGIN = 36  # points

# Characters python-markdown accepts backslash escapes for
MARKDOWN_SPECIAL = re.compile(r"([\\`*_{}\[\]()#+\-.!])")


def render_markdown(submission: Submission) -> str:
    """Markdown document for one submission."""
    md_lines = [f"# {submission.title}", "", f"*Analysed {_timestamp(submission.created_at)}*"]
    if submission.updated_at:
        md_lines.append(f"*Revised {_timestamp(submission.updated_at)}*")
    md_lines.append("\n---\n")
    md_lines.append(submission.analysis.to_markdown())
    md_lines.append("\n---\n")
    md_lines.append("### Submitted Text")
    md_lines.append("")
    md_lines.append(submission.text)
    return "\n".join(md_lines)


def render_html(submission: Submission) -> str:
    """Standalone HTML page for one submission."""
    title = escape(submission.title)
    html_parts = [f"<h1>{title}</h1>", f"<p><em>Analysed {_timestamp(submission.created_at)}</em></p>"]
    if submission.updated_at:
        html_parts.append(f"<p><em>Revised {_timestamp(submission.updated_at)}</em></p>")
    html_parts.append("<hr>")
    html_parts.append(markdown.markdown(
        submission.analysis.to_markdown(literal=_markdown_literal),
        extensions=["extra"],
    ))
    html_parts.append("<hr>")
    html_parts.append("<h3>Submitted Text</h3>")
    html_parts.extend(_text_paragraphs(submission.text))
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{title}</title>"
        f"<style>{EXPORT_CSS}</style></head><body>{''.join(html_parts)}</body></html>"
    )


def render_pdf(html: str) -> bytes:
    """Lay out HTML onto A4 pages and return the PDF bytes."""
    story = pymupdf.Story(html=html, user_css=EXPORT_CSS)
    buffer = io.BytesIO()
    writer = pymupdf.DocumentWriter(buffer)
    mediabox = pymupdf.paper_rect("a4")
    where = mediabox + (PAGE_MARGIN, PAGE_MARGIN, -PAGE_MARGIN, -PAGE_MARGIN)

    more = True
    while more:
        device = writer.begin_page(mediabox)
        more, _ = story.place(where)
        story.draw(device)
        writer.end_page()
    writer.close()

    return buffer.getvalue()


def export_submission(submission: Submission, fmt: str = "pdf") -> bytes:
    """Render a submission in ``fmt`` ("md", "html" or "pdf")."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")
    if fmt == "md":
        return render_markdown(submission).encode("utf-8")
    html = render_html(submission)
    if fmt == "html":
        return html.encode("utf-8")
    logger.info(f"Rendering PDF export for submission {submission.id}")
    return render_pdf(html)


def export_filename(submission: Submission, fmt: str = "pdf") -> str:
    """Filesystem-safe download name, e.g. ``my-essay-analysis.pdf``."""
    slug = re.sub(r"[^A-Za-z0-9]+", "-", submission.title).strip("-").lower() or "submission"
    return f"{slug[:60]}-analysis.{fmt}"


def _timestamp(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def _markdown_literal(value: str) -> str:
    """Backslash-escape markdown syntax, then HTML-escape, so ``value`` renders as plain text."""
    return str(escape(MARKDOWN_SPECIAL.sub(r"\\\1", value)))


def _text_paragraphs(text: str) -> list:
    """Escaped <p> blocks for the submitted text; blank lines separate paragraphs."""
    paragraphs = [p for p in re.split(r"\n\s*\n", text.strip()) if p.strip()]
    return ["<p>" + "<br>".join(str(escape(line)) for line in p.splitlines()) + "</p>" for p in paragraphs]
