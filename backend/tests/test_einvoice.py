"""
E-invoicing tests (SuperPDP gateway mocked with httpx.MockTransport).

Verifies:
- EN16931 payload: parties, lines, totals, VAT breakdown, exemption at 0 %
- send_einvoice preconditions (SIREN on both sides, not already sent)
- Conversion then send, with one cached OAuth token
- Event sync pages through the gateway and moves the cursor
"""

import json

import httpx
import pytest

from conftest import invoice_payload
from facturflow.extensions import db
from facturflow.models import Document, EInvoiceSyncState
from facturflow.services import einvoice_service
from facturflow.services.einvoice_service import build_en16931


class FakeGateway:
    """Minimal SuperPDP: token, convert, send and paged events."""

    def __init__(self, events=None, fail_on=None):
        self.calls = []
        self.events = events or []
        self.fail_on = fail_on

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path, request))

        if path == self.fail_on:
            return httpx.Response(500, text="boom")
        if path == "/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
        if path == "/v1.beta/invoices/convert":
            return httpx.Response(200, text="<rsm:CrossIndustryInvoice/>")
        if path == "/v1.beta/invoices":
            return httpx.Response(201, json={"id": 4242, "events": [{"status_code": "api:uploaded"}]})
        if path == "/v1.beta/invoice_events":
            after = int(request.url.params.get("starting_after_id", 0))
            remaining = [e for e in self.events if e["id"] > after]
            return httpx.Response(200, json={"data": remaining[:1], "has_after": len(remaining) > 1})
        return httpx.Response(404)

    def paths(self):
        return [path for _, path, _ in self.calls]


@pytest.fixture
def gateway(app, monkeypatch):
    fake = FakeGateway()
    monkeypatch.setitem(app.config, "HTTP_TRANSPORT", httpx.MockTransport(fake))
    return fake


def _invoice(client, headers, client_id, **overrides):
    resp = client.post("/api/invoices", json=invoice_payload(client_id, **overrides), headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json["invoice"]


def _load(invoice_id):
    db.session.expire_all()
    return db.session.get(Document, invoice_id)


class TestBuildEn16931:

    def test_standard_rate(self, client, headers, customer):
        invoice = _invoice(client, headers, customer.id, notes="Merci")
        payload = build_en16931(_load(invoice["id"]))

        assert payload["type_code"] == 380
        assert payload["number"] == invoice["number"]
        assert payload["currency_code"] == "EUR"
        assert payload["seller"]["electronic_address"] == {"scheme": "0225", "value": "123456789"}
        assert payload["buyer"]["electronic_address"] == {"scheme": "0225", "value": "552100554"}
        assert payload["buyer"]["legal_registration_identifier"]["value"] == "55210055400013"
        assert payload["seller"]["postal_address"]["country_code"] == "FR"

        assert [l["net_amount"] for l in payload["lines"]] == ["1000.00", "250.00"]
        assert payload["lines"][0]["invoiced_quantity"] == "2"
        assert payload["lines"][0]["vat_information"] == {
            "invoiced_item_vat_category_code": "S",
            "invoiced_item_vat_rate": "20.00",
        }

        assert payload["totals"]["total_without_vat"] == "1250.00"
        assert payload["totals"]["total_vat_amount"] == {"currency_code": "EUR", "value": "250.00"}
        assert payload["totals"]["total_with_vat"] == "1500.00"
        assert payload["totals"]["amount_due_for_payment"] == "1500.00"
        assert payload["vat_break_down"] == [{
            "vat_category_code": "S",
            "vat_category_taxable_amount": "1250.00",
            "vat_category_tax_amount": "250.00",
            "vat_category_rate": "20.00",
        }]
        assert payload["notes"] == [{"note": "Merci"}]
        assert payload["payment_instructions"]["credit_transfers"][0]["payment_account_identifier"]["value"] == (
            "FR7630006000011234567890189"
        )

    def test_zero_rate_uses_exemption(self, client, headers, customer):
        invoice = _invoice(client, headers, customer.id, vat_rate="0")
        payload = build_en16931(_load(invoice["id"]))

        breakdown = payload["vat_break_down"][0]
        assert breakdown["vat_category_code"] == "Z"
        assert breakdown["vat_exemption_reason_code"] == "VATEX-FR-FRANCHISE"
        assert "vat_category_rate" not in breakdown
        assert "invoiced_item_vat_rate" not in payload["lines"][0]["vat_information"]

    def test_discount_and_deposit(self, client, headers, customer):
        invoice = _invoice(
            client, headers, customer.id,
            discount_type="PERCENT", discount_value="10", deposit_cents=35000,
        )
        payload = build_en16931(_load(invoice["id"]))

        assert payload["totals"]["sum_invoice_lines_amount"] == "1250.00"
        assert payload["totals"]["sum_allowances_on_document_level"] == "125.00"
        assert payload["totals"]["total_without_vat"] == "1125.00"
        assert payload["totals"]["paid_amount"] == "350.00"
        assert payload["totals"]["amount_due_for_payment"] == "1000.00"
        assert payload["allowances"][0]["amount"] == "125.00"


class TestSendEinvoice:

    def test_send(self, client, headers, customer, gateway):
        invoice = _invoice(client, headers, customer.id)
        resp = client.post(f"/api/invoices/{invoice['id']}/einvoice", headers=headers)

        assert resp.status_code == 200
        assert resp.json["einvoice_ref"] == "4242"
        assert resp.json["einvoice_status"] == "api:uploaded"
        assert resp.json["einvoice_status_label"] == "Transmise à SuperPDP"
        assert resp.json["einvoice_sent_at"].endswith("Z")

        assert gateway.paths() == ["/oauth2/token", "/v1.beta/invoices/convert", "/v1.beta/invoices"]
        _, _, convert = gateway.calls[1]
        assert convert.headers["Authorization"] == "Bearer tok-1"
        assert convert.url.params["from"] == "en16931"
        assert json.loads(convert.content)["number"] == invoice["number"]
        _, _, send = gateway.calls[2]
        assert send.headers["Content-Type"] == "application/xml"
        assert send.content == b"<rsm:CrossIndustryInvoice/>"

        status = client.get(f"/api/invoices/{invoice['id']}/einvoice", headers=headers).json
        assert status["einvoice_ref"] == "4242"

    def test_already_sent(self, client, headers, customer, gateway):
        invoice = _invoice(client, headers, customer.id)
        client.post(f"/api/invoices/{invoice['id']}/einvoice", headers=headers)

        resp = client.post(f"/api/invoices/{invoice['id']}/einvoice", headers=headers)
        assert resp.status_code == 400
        assert resp.json["details"]["einvoice_ref"] == "4242"

    def test_token_is_cached(self, client, headers, customer, gateway):
        first = _invoice(client, headers, customer.id)
        second = _invoice(client, headers, customer.id)
        client.post(f"/api/invoices/{first['id']}/einvoice", headers=headers)
        client.post(f"/api/invoices/{second['id']}/einvoice", headers=headers)
        assert gateway.paths().count("/oauth2/token") == 1

    def test_client_without_siren(self, client, headers, individual, gateway):
        invoice = _invoice(client, headers, individual.id)
        resp = client.post(f"/api/invoices/{invoice['id']}/einvoice", headers=headers)
        assert resp.status_code == 400
        assert resp.json["details"]["field"] == "client.siren"
        assert gateway.calls == []

    def test_seller_without_siren(self, client, other_headers, other_user, gateway):
        resp = client.post("/api/clients", json={
            "type": "COMPANY",
            "name": "Beta SARL",
            "email": "compta@beta.fr",
            "siret": "55210055400013",
            "address": "8 rue du Port",
            "city": "Brest",
        }, headers=other_headers)
        assert resp.status_code == 201, resp.json
        customer = resp.json["client"]
        invoice = _invoice(client, other_headers, customer["id"])
        resp = client.post(f"/api/invoices/{invoice['id']}/einvoice", headers=other_headers)
        assert resp.status_code == 400
        assert resp.json["details"]["field"] == "company_siren"

    def test_gateway_failure(self, app, client, headers, customer, monkeypatch):
        fake = FakeGateway(fail_on="/v1.beta/invoices/convert")
        monkeypatch.setitem(app.config, "HTTP_TRANSPORT", httpx.MockTransport(fake))
        invoice = _invoice(client, headers, customer.id)

        resp = client.post(f"/api/invoices/{invoice['id']}/einvoice", headers=headers)
        assert resp.status_code == 502
        assert resp.json["details"]["status_code"] == 500
        assert _load(invoice["id"]).einvoice_ref is None

    def test_missing_credentials(self, app, client, headers, customer, gateway, monkeypatch):
        monkeypatch.setitem(app.config, "SUPERPDP_CLIENT_SECRET", "")
        invoice = _invoice(client, headers, customer.id)
        resp = client.post(f"/api/invoices/{invoice['id']}/einvoice", headers=headers)
        assert resp.status_code == 400
        assert gateway.calls == []


class TestEventSync:

    def test_sync_pages_and_moves_cursor(self, client, headers, customer, gateway):
        invoice = _invoice(client, headers, customer.id)
        client.post(f"/api/invoices/{invoice['id']}/einvoice", headers=headers)
        gateway.events = [
            {"id": 1, "invoice_id": 4242, "status_code": "fr:205"},
            {"id": 2, "invoice_id": 999, "status_code": "fr:206"},
            {"id": 3, "invoice_id": 4242, "status_code": "fr:212"},
        ]

        result = einvoice_service.sync_einvoice_events()
        assert result == {"processed": 2, "last_event_id": 3}
        assert _load(invoice["id"]).einvoice_status == "fr:212"
        assert db.session.get(EInvoiceSyncState, 1).last_event_id == 3

        again = einvoice_service.sync_einvoice_events()
        assert again == {"processed": 0, "last_event_id": 3}

    def test_cron_endpoint(self, client, cron_headers, db_session, gateway):
        resp = client.post("/api/cron/sync-einvoice-events", headers=cron_headers)
        assert resp.status_code == 200
        assert resp.json == {"success": True, "processed": 0, "last_event_id": 0}

    def test_cron_endpoint_gateway_down(self, app, client, cron_headers, db_session, monkeypatch):
        fake = FakeGateway(fail_on="/v1.beta/invoice_events")
        monkeypatch.setitem(app.config, "HTTP_TRANSPORT", httpx.MockTransport(fake))
        resp = client.post("/api/cron/sync-einvoice-events", headers=cron_headers)
        assert resp.status_code == 502
