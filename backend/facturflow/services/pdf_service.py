# Overview: PDF rendering of invoices, quotes, deposits and receipts with reportlab (A4).

from __future__ import annotations

import io

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from ..models import Document
from .receipt_service import DEFAULT_DESCRIPTION, payment_method_label
from .totals_service import format_eur, format_rate


TITLES = {
    "INVOICE": "FACTURE",
    "QUOTE": "DEVIS",
    "DEPOSIT": "FACTURE D'ACOMPTE",
    "RECEIPT": "REÇU",
}
ROWS_PER_PAGE = 22
MARGIN = 18 * mm
ACCENT = colors.Color(0.133, 0.247, 0.455)
HEADER_BG = colors.Color(0.925, 0.941, 0.965)
VAT_EXEMPTION = "TVA non applicable, art. 293 B du CGI"
PAYMENT_LINK_LABELS = {"stripe": "Stripe", "paypal": "PayPal", "gocardless": "GoCardless"}


def pdf_filename(document: Document) -> str:
    return f"{document.number}.pdf"


def _date(value) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


def _issuer_lines(user) -> list[str]:
    lines = [user.company_name or user.name]
    if user.company_address:
        lines.append(user.company_address)
    if user.company_postal_code or user.company_city:
        lines.append(f"{user.company_postal_code or ''} {user.company_city or ''}".strip())
    if user.company_siret:
        lines.append(f"SIRET : {user.company_siret}")
    if user.company_vat_number:
        lines.append(f"TVA : {user.company_vat_number}")
    if user.company_email or user.email:
        lines.append(user.company_email or user.email)
    if user.company_phone:
        lines.append(user.company_phone)
    return lines


def _client_lines(client) -> list[str]:
    lines = [client.display_name]
    if client.address:
        lines.append(client.address)
    if client.postal_code or client.city:
        lines.append(f"{client.postal_code or ''} {client.city or ''}".strip())
    if client.siret:
        lines.append(f"SIRET : {client.siret}")
    if client.vat_number:
        lines.append(f"TVA : {client.vat_number}")
    lines.append(client.email)
    return lines


def _reference_lines(document: Document) -> list[str]:
    lines = [f"N° {document.number}", f"Date : {_date(document.issue_date)}"]
    if document.doc_type == "QUOTE":
        lines.append(f"Valable jusqu'au : {_date(document.valid_until)}")
    elif document.doc_type in ("INVOICE", "DEPOSIT"):
        lines.append(f"Échéance : {_date(document.due_date)}")
    if document.doc_type == "DEPOSIT" and document.related_document is not None:
        lines.append(f"Devis : {document.related_document.number}")
    return lines


def _draw_block(c, x: float, y: float, title: str, lines: list[str]) -> float:
    c.setFont("Helvetica-Bold", 10)
    c.drawString(x, y, title)
    c.setFont("Helvetica", 9)
    y -= 5 * mm
    for line in lines:
        c.drawString(x, y, line)
        y -= 4.5 * mm
    return y


def _draw_header(c, document: Document, width: float, height: float) -> float:
    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 22)
    c.drawString(MARGIN, height - MARGIN - 4 * mm, TITLES[document.doc_type])
    c.setFillColor(colors.black)

    c.setFont("Helvetica", 10)
    y_ref = height - MARGIN
    for line in _reference_lines(document):
        c.drawRightString(width - MARGIN, y_ref, line)
        y_ref -= 5 * mm

    top = height - MARGIN - 22 * mm
    y_left = _draw_block(c, MARGIN, top, "Émetteur", _issuer_lines(document.user))
    y_right = _draw_block(c, width / 2 + 10 * mm, top, "Client", _client_lines(document.client))
    return min(y_left, y_right) - 6 * mm


def _line_rows(document: Document) -> list[list[str]]:
    rows = []
    for line in document.lines:
        description = line.description
        if line.category:
            description = f"[{'Main-d’œuvre' if line.category == 'LABOR' else 'Matériel'}] {description}"
        rows.append([
            description,
            f"{format(line.quantity, 'f').replace('.', ',')} {line.unit}",
            format_eur(line.unit_price_cents),
            f"{format_rate(line.vat_rate_bps)} %",
            format_eur(line.subtotal_cents),
        ])
    return rows


def _draw_table(c, rows: list[list[str]], y: float) -> float:
    data = [["Désignation", "Quantité", "Prix unitaire HT", "TVA", "Total HT"]] + rows
    table = Table(data, colWidths=[74 * mm, 24 * mm, 30 * mm, 16 * mm, 30 * mm])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
        ("ALIGN", (0, 0), (0, -1), "LEFT"),
        ("LINEBELOW", (0, 0), (-1, 0), 1, ACCENT),
        ("LINEBELOW", (0, -1), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    _, table_height = table.wrapOn(c, 0, 0)
    table.drawOn(c, MARGIN, y - table_height)
    return y - table_height - 8 * mm


def _totals_rows(document: Document) -> list[tuple[str, str, bool]]:
    rows = [("Total HT", format_eur(document.subtotal_cents), False)]
    if document.discount_cents > 0:
        label = "Remise"
        if document.discount_type == "PERCENT" and document.discount_percent is not None:
            label = f"Remise ({format(document.discount_percent.normalize(), 'f').replace('.', ',')} %)"
        rows.append((label, f"- {format_eur(document.discount_cents)}", False))
        rows.append(("Net HT", format_eur(document.net_cents), False))
    rows.append((f"TVA ({format_rate(document.vat_rate_bps)} %)", format_eur(document.tax_total_cents), False))
    rows.append(("Total TTC", format_eur(document.total_cents), True))
    if document.deposit_cents > 0:
        deposit_label = "Acompte demandé" if document.doc_type == "QUOTE" else "Acompte versé"
        rows.append((deposit_label, format_eur(document.deposit_cents), False))
        if document.doc_type != "QUOTE":
            rows.append(("Net à payer", format_eur(document.net_to_pay_cents), True))
    return rows


def _draw_totals(c, document: Document, width: float, y: float) -> float:
    label_x = width - MARGIN - 40 * mm
    for label, value, bold in _totals_rows(document):
        c.setFont("Helvetica-Bold" if bold else "Helvetica", 11 if bold else 10)
        c.drawRightString(label_x, y, f"{label} :")
        c.drawRightString(width - MARGIN, y, value)
        y -= 6 * mm
    if document.vat_rate_bps == 0:
        c.setFont("Helvetica-Oblique", 9)
        c.drawRightString(width - MARGIN, y, VAT_EXEMPTION)
        y -= 6 * mm
    return y - 4 * mm


def _draw_footer_blocks(c, document: Document, y: float) -> float:
    user = document.user
    links = document.metadata_dict.get("payment_links") or {}
    if user.iban and document.doc_type in ("INVOICE", "DEPOSIT"):
        c.setFont("Helvetica-Bold", 10)
        c.drawString(MARGIN, y, "Paiement par virement")
        c.setFont("Helvetica", 9)
        y -= 5 * mm
        c.drawString(MARGIN, y, f"IBAN : {user.iban}" + (f"  BIC : {user.bic}" if user.bic else ""))
        y -= 7 * mm
    if links:
        c.setFont("Helvetica-Bold", 10)
        c.drawString(MARGIN, y, "Payer en ligne")
        c.setFont("Helvetica", 9)
        y -= 5 * mm
        for provider, url in links.items():
            c.drawString(MARGIN, y, f"{PAYMENT_LINK_LABELS.get(provider, provider)} : {url}")
            c.linkURL(url, (MARGIN, y - 1 * mm, MARGIN + 150 * mm, y + 3 * mm))
            y -= 4.5 * mm
        y -= 3 * mm
    if document.notes:
        c.setFont("Helvetica-Bold", 10)
        c.drawString(MARGIN, y, "Notes")
        c.setFont("Helvetica", 9)
        y -= 5 * mm
        for line in document.notes.splitlines()[:12]:
            c.drawString(MARGIN, y, line[:110])
            y -= 4.5 * mm
    if document.doc_type == "QUOTE":
        y -= 4 * mm
        c.setFont("Helvetica-Bold", 10)
        c.drawString(MARGIN, y, 'Bon pour accord (date et signature) :')
        y -= 20 * mm
    return y


def _draw_receipt_body(c, document: Document, width: float, y: float) -> None:
    metadata = document.metadata_dict
    c.setFont("Helvetica", 11)
    c.drawString(MARGIN, y, f"Objet : {metadata.get('description') or DEFAULT_DESCRIPTION}")
    y -= 8 * mm
    c.drawString(MARGIN, y, f"Mode de paiement : {payment_method_label(metadata.get('payment_method'))}")
    y -= 12 * mm
    c.setFont("Helvetica-Bold", 14)
    c.drawString(MARGIN, y, f"Montant reçu : {format_eur(document.total_cents)}")
    y -= 10 * mm
    c.setFont("Helvetica-Oblique", 9)
    c.drawString(MARGIN, y, VAT_EXEMPTION)
    if document.notes:
        y -= 10 * mm
        c.setFont("Helvetica", 9)
        for line in document.notes.splitlines()[:12]:
            c.drawString(MARGIN, y, line[:110])
            y -= 4.5 * mm


def render_document_pdf(document: Document) -> bytes:
    """Render any document type to PDF bytes."""
    buf = io.BytesIO()
    width, height = A4
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"{TITLES[document.doc_type].capitalize()} {document.number}")

    y = _draw_header(c, document, width, height)

    if document.doc_type == "RECEIPT":
        _draw_receipt_body(c, document, width, y)
    else:
        rows = _line_rows(document)
        chunks = [rows[i:i + ROWS_PER_PAGE] for i in range(0, len(rows), ROWS_PER_PAGE)] or [[]]
        for idx, chunk in enumerate(chunks):
            if idx > 0:
                c.showPage()
                y = height - MARGIN
            y = _draw_table(c, chunk, y)
        if y < 70 * mm:
            c.showPage()
            y = height - MARGIN
        y = _draw_totals(c, document, width, y)
        _draw_footer_blocks(c, document, y)

    c.setFont("Helvetica", 8)
    c.setFillColor(colors.grey)
    c.drawCentredString(width / 2, 10 * mm, f"{document.number} - généré par FacturFlow")
    c.showPage()
    c.save()
    buf.seek(0)
    return buf.read()
