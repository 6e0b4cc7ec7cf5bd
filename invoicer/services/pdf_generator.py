# invoicer/services/pdf_generator.py
import logging
import os
from io import BytesIO
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import cm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from invoicer.formatting import fmt_amount, fmt_qty, fmt_rate
from invoicer.models.invoice import Contact, InvoiceRequest
from invoicer.services.calculations import invoice_total, items_total, line_total

logger = logging.getLogger(__name__)

ACCENT = colors.Color(98 / 255, 107 / 255, 241 / 255)
PRIMARY = colors.Color(0.2, 0.2, 0.2)
SECONDARY = colors.Color(0.3, 0.3, 0.3)
TERTIARY = colors.Color(0.5, 0.5, 0.5)
QUATERNARY = colors.Color(0.6, 0.6, 0.6)
BORDER = colors.Color(0.85, 0.85, 0.85)

_FONTS: Optional[Tuple[str, str]] = None


def _register_fonts() -> Tuple[str, str]:
    """Regular and bold font names; a configured TTF when available, Helvetica otherwise."""
    global _FONTS
    if _FONTS is not None:
        return _FONTS

    regular_path = os.getenv("INVOICE_FONT_PATH")
    bold_path = os.getenv("INVOICE_FONT_BOLD_PATH") or regular_path
    fonts = ("Helvetica", "Helvetica-Bold")
    if regular_path and os.path.exists(regular_path):
        try:
            pdfmetrics.registerFont(TTFont("InvoiceFont", regular_path))
            pdfmetrics.registerFont(TTFont("InvoiceFont-Bold", bold_path if os.path.exists(bold_path) else regular_path))
            fonts = ("InvoiceFont", "InvoiceFont-Bold")
        except TTFError as e:
            logger.warning(f"Font loading failed, using Helvetica: {e}")
    _FONTS = fonts
    return fonts


def _styles(regular: str, bold: str) -> dict:
    return {
        "title": ParagraphStyle("title", fontName=bold, fontSize=24, leading=28, textColor=PRIMARY),
        "number": ParagraphStyle("number", fontName=regular, fontSize=11, leading=28, textColor=QUATERNARY, alignment=TA_RIGHT),
        "label": ParagraphStyle("label", fontName=regular, fontSize=9, leading=14, textColor=TERTIARY),
        "name": ParagraphStyle("name", fontName=bold, fontSize=10, leading=16, textColor=PRIMARY),
        "body": ParagraphStyle("body", fontName=regular, fontSize=10, leading=16, textColor=SECONDARY),
        "footer": ParagraphStyle("footer", fontName=regular, fontSize=8, leading=10, textColor=TERTIARY),
    }


def _contact_block(label: str, contact: Contact, styles: dict) -> List[Paragraph]:
    block = [Paragraph(label, styles["label"]), Paragraph(escape(contact.name), styles["name"])]
    block.append(Paragraph(escape(contact.address), styles["body"]))
    block.append(Paragraph(escape(contact.email), styles["body"]))
    if contact.phone:
        block.append(Paragraph(escape(contact.phone), styles["body"]))
    return block


def totals_rows(request: InvoiceRequest) -> List[List[str]]:
    totals = invoice_total(items_total(request.items), request.tax_rate, request.discount_rate)
    cur = request.currency
    return [
        ["Subtotal", fmt_amount(totals.subtotal, cur)],
        [f"Tax ({fmt_rate(request.tax_rate)}%)", fmt_amount(totals.tax_amount, cur)],
        [f"Discount ({fmt_rate(request.discount_rate)}%)", f"-{fmt_amount(totals.discount_amount, cur)}"],
        ["Total", fmt_amount(totals.final_total, cur)],
    ]


def generate_pdf(request: InvoiceRequest, invoice_id: str) -> bytes:
    regular, bold = _register_fonts()
    styles = _styles(regular, bold)

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=1.4*cm, leftMargin=1.4*cm,
        topMargin=1.4*cm, bottomMargin=2*cm,
        title=f"Invoice {invoice_id}",
        author=request.seller.name,
    )
    width = A4[0] - doc.leftMargin - doc.rightMargin
    story = []

    # Header
    header = Table(
        [[Paragraph("Invoice", styles["title"]), Paragraph(f"#{escape(invoice_id)}", styles["number"])]],
        colWidths=[width / 2, width / 2],
    )
    header.setStyle(TableStyle([
        ("VALIGN",    (0, 0), (-1, -1), "BOTTOM"),
        ("LINEBELOW", (0, 0), (0, 0), 2, QUATERNARY),
        ("PADDING",   (0, 0), (-1, -1), 0),
    ]))
    story.append(header)
    story.append(Spacer(1, 1.5*cm))

    # Seller / buyer
    parties = Table(
        [[_contact_block("FROM", request.seller, styles), _contact_block("TO", request.buyer, styles)]],
        colWidths=[width / 2, width / 2],
    )
    parties.setStyle(TableStyle([
        ("VALIGN",  (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 0),
    ]))
    story.append(parties)
    story.append(Spacer(1, 1*cm))

    dates = Table(
        [[
            Paragraph(f"<font color='grey'>Issue Date:</font> {request.issue_date.isoformat()}", styles["body"]),
            Paragraph(f"<font color='grey'>Due Date:</font> {request.due_date.isoformat()}", styles["body"]),
        ]],
        colWidths=[width / 2, width / 2],
    )
    dates.setStyle(TableStyle([("PADDING", (0, 0), (-1, -1), 0)]))
    story.append(dates)
    story.append(Spacer(1, 1.5*cm))

    # Items
    lines_data = [["Description", "Qty", "Unit Price", "Total"]]
    for item in request.items:
        lines_data.append([
            Paragraph(escape(item.description), styles["body"]),
            fmt_qty(item.qty),
            fmt_amount(item.unit, request.currency),
            fmt_amount(line_total(item), request.currency),
        ])

    lines_table = Table(
        lines_data,
        colWidths=[width * 0.55, width * 0.12, width * 0.18, width * 0.15],
        repeatRows=1,
    )
    lines_table.setStyle(TableStyle([
        ("FONTNAME",  (0, 0), (-1, 0), regular),
        ("FONTSIZE",  (0, 0), (-1, 0), 9),
        ("TEXTCOLOR", (0, 0), (-1, 0), TERTIARY),
        ("FONTNAME",  (0, 1), (-1, -1), regular),
        ("FONTSIZE",  (0, 1), (-1, -1), 10),
        ("TEXTCOLOR", (0, 1), (-1, -1), PRIMARY),
        ("LINEBELOW", (0, 0), (-1, 0), 1, BORDER),
        ("ALIGN",     (1, 0), (1, -1), "CENTER"),
        ("ALIGN",     (2, 0), (-1, -1), "RIGHT"),
        ("VALIGN",    (0, 0), (-1, -1), "TOP"),
        ("PADDING",   (0, 0), (-1, -1), 4),
    ]))
    story.append(lines_table)
    story.append(Spacer(1, 1*cm))

    # Totals, with notes beside them
    totals_table = Table(totals_rows(request), colWidths=[3.5*cm, 3.5*cm])
    totals_table.setStyle(TableStyle([
        ("FONTNAME",  (0, 0), (-1, -1), regular),
        ("FONTSIZE",  (0, 0), (-1, -1), 10),
        ("TEXTCOLOR", (0, 0), (0, -1), TERTIARY),
        ("ALIGN",     (1, 0), (1, -1), "RIGHT"),
        ("FONTNAME",  (0, -1), (-1, -1), bold),
        ("FONTSIZE",  (0, -1), (-1, -1), 11),
        ("TEXTCOLOR", (0, -1), (-1, -1), PRIMARY),
        ("LINEABOVE", (0, -1), (-1, -1), 1, BORDER),
        ("BOX",       (0, 0), (-1, -1), 1, BORDER),
        ("PADDING",   (0, 0), (-1, -1), 6),
    ]))

    notes_cell = ""
    if request.notes:
        notes_cell = Table(
            [[Paragraph("Notes", styles["label"])], [Paragraph(escape(request.notes), styles["body"])]],
            colWidths=[width * 0.4],
        )
        notes_cell.setStyle(TableStyle([
            ("BOX",     (0, 0), (-1, -1), 1, BORDER),
            ("PADDING", (0, 0), (-1, -1), 8),
        ]))

    summary = Table([[notes_cell, totals_table]], colWidths=[width - 7*cm, 7*cm])
    summary.setStyle(TableStyle([
        ("VALIGN",  (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 0),
    ]))
    story.append(summary)

    payment_text = (
        "Please make payment by the due date. For questions about this invoice, "
        f"contact {request.seller.email}"
    )

    def draw_page(canvas, document):
        canvas.saveState()
        page_width, page_height = A4
        canvas.setStrokeColor(ACCENT)
        canvas.setLineWidth(8)
        canvas.line(0, page_height, page_width, page_height)
        canvas.setStrokeColor(BORDER)
        canvas.setLineWidth(1)
        canvas.line(document.leftMargin, 1.6*cm, page_width - document.rightMargin, 1.6*cm)
        footer = Paragraph(escape(payment_text), styles["footer"])
        _, height = footer.wrap(page_width - document.leftMargin - document.rightMargin, 2*cm)
        footer.drawOn(canvas, document.leftMargin, 1.4*cm - height)
        canvas.restoreState()

    doc.build(story, onFirstPage=draw_page, onLaterPages=draw_page)
    return buffer.getvalue()
