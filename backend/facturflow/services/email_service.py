# Overview: Outbound email of documents through SendGrid; French HTML bodies with the PDF attached.

"""
Document emails.

compose_document_email() builds the message (recipient, subject, HTML
body, PDF attachment); deliver() hands it to SendGrid. Quote emails carry
the public accept/refuse links built from APP_URL.

A missing SENDGRID_API_KEY raises EmailError: nothing is marked as sent
when the message could not leave.
"""

from __future__ import annotations

import base64
import html
from dataclasses import dataclass

from flask import current_app
from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import (
    Attachment,
    Content,
    Disposition,
    Email,
    FileContent,
    FileName,
    FileType,
    Mail,
    To,
)

from ..extensions import db
from ..models import Document
from . import document_service, pdf_service
from .quote_service import quote_links
from .totals_service import format_eur


SUBJECTS = {
    "INVOICE": "Facture {number}",
    "QUOTE": "Devis {number} – En attente de votre accord",
    "DEPOSIT": "Facture d'acompte {number}",
    "RECEIPT": "Reçu {number}",
}
LABELS = {
    "INVOICE": "la facture",
    "QUOTE": "le devis",
    "DEPOSIT": "la facture d'acompte",
    "RECEIPT": "le reçu",
}


class EmailError(Exception):
    """Email could not be sent (configuration or provider error)."""


@dataclass
class OutgoingEmail:
    to_email: str
    to_name: str
    from_name: str
    subject: str
    html_body: str
    attachment: bytes
    attachment_name: str


def _date(value) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


def _button(url: str, label: str, color: str) -> str:
    return (
        f'<a href="{html.escape(url)}" style="display:inline-block;background:{color};color:#ffffff;'
        f'padding:12px 24px;border-radius:6px;text-decoration:none;font-weight:600;margin:0 6px;">{label}</a>'
    )


def _summary_rows(document: Document) -> list[tuple[str, str]]:
    if document.doc_type == "RECEIPT":
        return [("Montant reçu", format_eur(document.total_cents)), ("Date", _date(document.issue_date))]
    rows = [("Montant TTC", format_eur(document.total_cents))]
    if document.doc_type == "QUOTE":
        rows.append(("Valide jusqu'au", _date(document.valid_until)))
    else:
        if document.deposit_cents > 0:
            rows.append(("Net à payer", format_eur(document.net_to_pay_cents)))
        rows.append(("Échéance", _date(document.due_date)))
    return rows


def build_html(document: Document, app_url: str) -> str:
    issuer = html.escape(document.user.company_name or document.user.name)
    client_name = html.escape(document.client.display_name)
    number = html.escape(document.number)
    rows = "".join(
        f'<tr><td style="padding:4px 0;">{label}</td>'
        f'<td style="padding:4px 0;text-align:right;font-weight:600;">{html.escape(value)}</td></tr>'
        for label, value in _summary_rows(document)
    )

    actions = ""
    if document.doc_type == "QUOTE" and document.accept_token and document.refuse_token:
        links = quote_links(document, app_url)
        actions = (
            '<p style="text-align:center;margin:28px 0;">'
            + _button(links["accept"], "Accepter le devis", "#16a34a")
            + _button(links["refuse"], "Refuser le devis", "#dc2626")
            + "</p>"
        )

    payment = ""
    payment_links = document.metadata_dict.get("payment_links") or {}
    if payment_links and document.doc_type in ("INVOICE", "DEPOSIT"):
        payment = "<p>Payer en ligne : " + " | ".join(
            f'<a href="{html.escape(url)}">{html.escape(provider.capitalize())}</a>'
            for provider, url in payment_links.items()
        ) + "</p>"

    return f"""
    <div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;padding:24px;color:#334155;">
        <div style="background:#223f74;padding:20px;border-radius:8px;margin-bottom:24px;">
            <h1 style="color:#ffffff;margin:0;font-size:20px;">{issuer}</h1>
        </div>
        <p>Bonjour {client_name},</p>
        <p>Veuillez trouver ci-joint {LABELS[document.doc_type]} <strong>n°{number}</strong>.</p>
        <div style="background:#f8fafc;border:1px solid #e2e8f0;border-radius:8px;padding:16px;margin:20px 0;">
            <table style="width:100%;font-size:14px;">{rows}</table>
        </div>
        {actions}
        {payment}
        <p>Cordialement,<br>{issuer}</p>
        <p style="font-size:12px;color:#94a3b8;">Document envoyé avec FacturFlow.</p>
    </div>
    """


def compose_document_email(document: Document, app_url: str | None = None) -> OutgoingEmail:
    app_url = app_url or current_app.config["APP_URL"]
    return OutgoingEmail(
        to_email=document.client.email,
        to_name=document.client.display_name,
        from_name=document.user.company_name or document.user.name,
        subject=SUBJECTS[document.doc_type].format(number=document.number),
        html_body=build_html(document, app_url),
        attachment=pdf_service.render_document_pdf(document),
        attachment_name=pdf_service.pdf_filename(document),
    )


def deliver(message: OutgoingEmail) -> None:
    api_key = current_app.config.get("SENDGRID_API_KEY")
    if not api_key:
        raise EmailError("SENDGRID_API_KEY is not configured")

    mail = Mail(
        from_email=Email(current_app.config["MAIL_FROM"], message.from_name or current_app.config["MAIL_FROM_NAME"]),
        to_emails=To(message.to_email, message.to_name),
        subject=message.subject,
        html_content=Content("text/html", message.html_body),
    )
    mail.attachment = Attachment(
        FileContent(base64.b64encode(message.attachment).decode("ascii")),
        FileName(message.attachment_name),
        FileType("application/pdf"),
        Disposition("attachment"),
    )

    try:
        response = SendGridAPIClient(api_key).send(mail)
    except HTTPError as exc:
        raise EmailError(f"Email provider rejected the message: {exc}")
    if response.status_code not in (200, 202):
        raise EmailError(f"Email provider error ({response.status_code})")

    current_app.logger.info("Email sent to=%s subject=%s", message.to_email, message.subject)


def send_document_email(document: Document) -> OutgoingEmail:
    if document.client is None or not document.client.email:
        raise document_service.DocumentError("Client has no email address", {"client_id": document.client_id})
    message = compose_document_email(document)
    deliver(message)
    return message


def email_document(document: Document) -> bool:
    """
    Email the document, then move it to SENT if it was a DRAFT.
    Returns True when the status changed.
    """
    send_document_email(document)
    changed = document_service.mark_sent_if_draft(document)
    db.session.commit()
    return changed
