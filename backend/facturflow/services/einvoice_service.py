# Overview: Service-layer e-invoicing; EN16931 payload building, Peppol transmission and gateway status sync.

"""
E-invoicing (facture électronique) through SuperPDP.

FLOW OF send_einvoice():
1. Load the invoice (scoped to the user)
2. Refuse if it was already transmitted
3. Both parties need a SIREN: it is their Peppol address in France
4. Build the EN16931 JSON
5. Gateway converts it to CII XML, then the XML is sent on Peppol
6. Store the gateway id, initial status and sent date

sync_einvoice_events() pages through gateway events after the stored
cursor (EInvoiceSyncState, id=1) and copies status codes onto documents.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Document, EInvoiceSyncState
from . import document_service, superpdp_client
from .superpdp_client import EInvoiceError, status_label
from facturflow.time_utils import to_iso_date, to_utc_z, utcnow


INVOICE_TYPE_CODE = 380
BUSINESS_PROCESS = "urn:fdc:peppol.eu:2017:poacc:billing:01:1.0"
SPECIFICATION_ID = "urn:cen.eu:en16931:2017#compliant#urn:fdc:peppol.eu:2017:poacc:billing:01:1.0"
SIREN_SCHEME = "0225"
SIRET_SCHEME = "0002"
UNIT_CODE = "C62"
CREDIT_TRANSFER_CODE = "30"
VAT_EXEMPTION_CODE = "VATEX-FR-FRANCHISE"
VAT_EXEMPTION_TEXT = "TVA non applicable, article 293 B du CGI"
SYNC_STATE_ID = 1


def _amount(cents: int) -> str:
    return f"{Decimal(cents) / 100:.2f}"


def _rate(vat_rate_bps: int) -> str:
    return f"{Decimal(vat_rate_bps) / 100:.2f}"


def _quantity(value) -> str:
    return format(Decimal(value).normalize(), "f")


def _party(
    name: str,
    *,
    address: str | None,
    city: str | None,
    postal_code: str | None,
    country: str | None,
    siren: str | None,
    siret: str | None,
    vat_number: str | None,
    email: str | None,
) -> dict:
    country_code = (country or "FR").upper()
    if country_code == "FRANCE":
        country_code = "FR"
    party = {
        "name": name,
        "postal_address": {
            "address_line1": address,
            "city": city,
            "post_code": postal_code,
            "country_code": country_code,
        },
    }
    if siren:
        party["electronic_address"] = {"scheme": SIREN_SCHEME, "value": siren}
    if siret:
        party["legal_registration_identifier"] = {"scheme": SIRET_SCHEME, "value": siret}
    if vat_number:
        party["vat_identifier"] = vat_number
    if email:
        party["contact"] = {"email_address": email}
    return party


def build_en16931(document: Document) -> dict:
    """
    EN16931 JSON for an invoice. All lines share the document VAT rate, so
    the VAT breakdown has a single entry (category S, or Z with the
    franchise exemption at 0 %).
    """
    user = document.user
    client = document.client
    rate = document.vat_rate_bps
    category = "Z" if rate == 0 else "S"

    lines = []
    for idx, line in enumerate(document.lines, start=1):
        vat_info = {"invoiced_item_vat_category_code": category}
        if rate > 0:
            vat_info["invoiced_item_vat_rate"] = _rate(rate)
        lines.append({
            "identifier": str(idx),
            "invoiced_quantity": _quantity(line.quantity),
            "invoiced_quantity_code": UNIT_CODE,
            "net_amount": _amount(line.subtotal_cents),
            "item_information": {"name": line.description},
            "vat_information": vat_info,
            "price_details": {"item_net_price": _amount(line.unit_price_cents)},
        })

    totals = {
        "sum_invoice_lines_amount": _amount(document.subtotal_cents),
        "total_without_vat": _amount(document.net_cents),
        "total_vat_amount": {"currency_code": "EUR", "value": _amount(document.tax_total_cents)},
        "total_with_vat": _amount(document.total_cents),
        "amount_due_for_payment": _amount(document.net_to_pay_cents),
    }
    if document.discount_cents > 0:
        totals["sum_allowances_on_document_level"] = _amount(document.discount_cents)
    if document.deposit_cents > 0:
        totals["paid_amount"] = _amount(document.deposit_cents)

    breakdown = {
        "vat_category_code": category,
        "vat_category_taxable_amount": _amount(document.net_cents),
        "vat_category_tax_amount": _amount(document.tax_total_cents),
    }
    if rate > 0:
        breakdown["vat_category_rate"] = _rate(rate)
    else:
        breakdown["vat_exemption_reason_code"] = VAT_EXEMPTION_CODE
        breakdown["vat_exemption_reason"] = VAT_EXEMPTION_TEXT

    payload = {
        "type_code": INVOICE_TYPE_CODE,
        "number": document.number,
        "issue_date": to_iso_date(document.issue_date),
        "currency_code": "EUR",
        "process_control": {
            "business_process_type": BUSINESS_PROCESS,
            "specification_identifier": SPECIFICATION_ID,
        },
        "seller": _party(
            user.company_name or user.name,
            address=user.company_address,
            city=user.company_city,
            postal_code=user.company_postal_code,
            country=user.company_country,
            siren=user.company_siren,
            siret=user.company_siret,
            vat_number=user.company_vat_number,
            email=user.company_email,
        ),
        "buyer": _party(
            client.display_name,
            address=client.address,
            city=client.city,
            postal_code=client.postal_code,
            country=client.country,
            siren=client.siren,
            siret=client.siret,
            vat_number=client.vat_number,
            email=client.email,
        ),
        "lines": lines,
        "totals": totals,
        "vat_break_down": [breakdown],
    }
    if document.due_date:
        payload["payment_due_date"] = to_iso_date(document.due_date)
    if document.discount_cents > 0:
        allowance = {
            "amount": _amount(document.discount_cents),
            "reason": "Remise",
            "vat_category_code": category,
        }
        if rate > 0:
            allowance["vat_rate"] = _rate(rate)
        payload["allowances"] = [allowance]
    if document.notes:
        payload["notes"] = [{"note": document.notes}]
    if user.iban:
        transfer = {"payment_account_identifier": {"scheme": "IBAN", "value": user.iban}}
        if user.bic:
            transfer["payment_service_provider_identifier"] = user.bic
        payload["payment_instructions"] = {
            "payment_means_type_code": CREDIT_TRANSFER_CODE,
            "credit_transfers": [transfer],
        }
    return payload


def send_einvoice(user_id: int, invoice_id: int) -> Document:
    document = document_service.get_document(user_id, "INVOICE", invoice_id)

    if document.einvoice_ref:
        raise EInvoiceError(
            "This invoice has already been sent electronically",
            {"einvoice_ref": document.einvoice_ref},
        )
    if not document.client.siren:
        raise EInvoiceError(
            "The client needs a SIREN to receive an e-invoice. Add it to the client record.",
            {"field": "client.siren"},
        )
    if not document.user.company_siren:
        raise EInvoiceError(
            "Your SIREN must be set in the company profile to send e-invoices.",
            {"field": "company_siren"},
        )

    payload = build_en16931(document)
    xml = superpdp_client.convert_to_cii(payload)
    response = superpdp_client.send_invoice_xml(xml)

    events = response.get("events") or []
    initial_status = (events[0].get("status_code") if events else None) or "api:uploaded"

    document.einvoice_ref = str(response["id"])
    document.einvoice_status = initial_status
    document.einvoice_sent_at = utcnow()
    db.session.commit()

    current_app.logger.info(
        "E-invoice transmitted invoice=%s ref=%s status=%s",
        document.number, document.einvoice_ref, initial_status,
    )
    return document


def einvoice_info(document: Document) -> dict:
    return {
        "einvoice_ref": document.einvoice_ref,
        "einvoice_status": document.einvoice_status,
        "einvoice_status_label": status_label(document.einvoice_status),
        "einvoice_sent_at": to_utc_z(document.einvoice_sent_at),
    }


def _sync_state() -> EInvoiceSyncState:
    state = db.session.get(EInvoiceSyncState, SYNC_STATE_ID)
    if state is None:
        state = EInvoiceSyncState(id=SYNC_STATE_ID, last_event_id=0)
        db.session.add(state)
        db.session.flush()
    return state


def sync_einvoice_events() -> dict:
    """Apply gateway events after the stored cursor. Returns processed count and cursor."""
    state = _sync_state()
    last_event_id = state.last_event_id
    processed = 0

    while True:
        page = superpdp_client.get_invoice_events(last_event_id)
        events = page.get("data") or []
        if not events:
            break

        for event in events:
            document = (
                db.session.query(Document)
                .filter(Document.einvoice_ref == str(event.get("invoice_id")))
                .first()
            )
            if document is not None:
                document.einvoice_status = event.get("status_code")
                processed += 1
            if int(event["id"]) > last_event_id:
                last_event_id = int(event["id"])

        if not page.get("has_after"):
            break

    state.last_event_id = last_event_id
    db.session.commit()

    current_app.logger.info("E-invoice events synced processed=%s last_event_id=%s", processed, last_event_id)
    return {"processed": processed, "last_event_id": last_event_id}
