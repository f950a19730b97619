"""
Combine section text and figures into a single PDF.

Layout: title page, then for each section a text page followed by a
figure page, then an optional summary page.
"""

from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (SimpleDocTemplate, Paragraph, Spacer,
                                PageBreak, Image as RLImage)


def _escape(line):
    # reportlab paragraphs are XML-ish markup
    return line.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _styles():
    styles = getSampleStyleSheet()
    code_style = ParagraphStyle(
        "Code",
        parent=styles["Normal"],
        fontName="Courier",
        fontSize=8.5,
        leading=11,
    )
    title_style = ParagraphStyle(
        "SectionTitle",
        parent=styles["Heading1"],
        fontName="Helvetica-Bold",
        fontSize=14,
        leading=18,
        spaceAfter=12,
        textColor="#2171B5",
    )
    heading_style = ParagraphStyle(
        "PrimerTitle",
        parent=styles["Title"],
        fontName="Helvetica-Bold",
        fontSize=18,
        leading=22,
        spaceAfter=6,
    )
    subtitle_style = ParagraphStyle(
        "Subtitle",
        parent=styles["Normal"],
        fontName="Helvetica",
        fontSize=10,
        leading=13,
        spaceAfter=20,
        textColor="#555555",
    )
    return styles, code_style, title_style, heading_style, subtitle_style


def _text_block(text, title_style, code_style):
    """First line becomes the title, the rest monospace lines."""
    story = []
    if not text.strip():
        return story
    lines = text.strip().split("\n")
    story.append(Paragraph(_escape(lines[0]), title_style))
    for line in lines[1:]:
        if line.strip() == "":
            story.append(Spacer(1, 6))
        else:
            story.append(Paragraph(_escape(line), code_style))
    return story


def figure_size(fig_path, max_w, max_h):
    """Display size of an image scaled to max_w, capped at max_h."""
    with Image.open(fig_path) as img:
        iw, ih = img.size
    aspect = ih / iw
    w, h = max_w, max_w * aspect
    if h > max_h:
        h = max_h
        w = h / aspect
    return w, h


def build_pdf(sections, pdf_path, title, subtitle=None, summary=None):
    """
    Write the PDF.

    Parameters
    ----------
    sections : list of (text, figure_path)
        figure_path may be None for a text-only section.
    pdf_path : str or Path
    title : str
    subtitle : str or None
    summary : str or None
        Closing text page.

    Returns
    -------
    pdf_path
    """
    _, code_style, title_style, heading_style, subtitle_style = _styles()
    doc = SimpleDocTemplate(str(pdf_path), pagesize=letter,
                            leftMargin=0.75 * inch, rightMargin=0.75 * inch,
                            topMargin=0.75 * inch, bottomMargin=0.75 * inch)
    page_w = letter[0] - 1.5 * inch
    max_h = letter[1] - 1.5 * inch

    story = [Paragraph(_escape(title), heading_style)]
    if subtitle:
        story.append(Paragraph(_escape(subtitle), subtitle_style))
    story.append(PageBreak())

    for text, fig_path in sections:
        story.extend(_text_block(text, title_style, code_style))
        story.append(PageBreak())
        if fig_path is not None:
            w, h = figure_size(fig_path, page_w, max_h)
            story.append(RLImage(str(fig_path), width=w, height=h))
            story.append(PageBreak())

    if summary:
        story.extend(_text_block(summary, title_style, code_style))

    doc.build(story)
    return pdf_path
