"""
Deposit and receipt API tests.

Verifies:
- Manual deposits: single "Acompte" line, VAT on top, optional quote link
- Deposit generation from a quote (once, only when a deposit is requested)
- Receipts: always PAID, no VAT, payment method labels
"""

from datetime import timedelta

from conftest import quote_payload
from facturflow.time_utils import utcnow, utctoday


def _deposit_form(client_id, **overrides):
    form = {
        "client_id": client_id,
        "amount_cents": 50000,
        "vat_rate": "20",
        "due_date": (utctoday() + timedelta(days=15)).isoformat(),
    }
    form.update(overrides)
    return form


def _receipt_form(client_id, **overrides):
    form = {
        "client_id": client_id,
        "amount_cents": 12000,
        "description": "Séance photo",
        "payment_method": "card",
    }
    form.update(overrides)
    return form


class TestDeposits:

    def test_create(self, client, headers, customer):
        resp = client.post("/api/deposits", json=_deposit_form(customer.id), headers=headers)
        assert resp.status_code == 201
        deposit = resp.json["deposit"]
        assert deposit["number"] == f"DEP-{utcnow().year}-0001"
        assert deposit["status"] == "DRAFT"
        assert deposit["total_cents"] == 60000
        assert deposit["lines"][0]["description"] == "Acompte"
        assert deposit["related_quote_number"] is None

    def test_linked_to_quote(self, client, headers, customer):
        quote = client.post("/api/quotes", json=quote_payload(customer.id), headers=headers).json["quote"]
        resp = client.post(
            "/api/deposits",
            json=_deposit_form(customer.id, related_quote_id=quote["id"]),
            headers=headers,
        )
        deposit = resp.json["deposit"]
        assert deposit["related_document_id"] == quote["id"]
        assert deposit["related_quote_number"] == quote["number"]
        assert deposit["lines"][0]["description"] == f"Acompte sur devis {quote['number']}"

    def test_validation(self, client, headers, db_session):
        resp = client.post("/api/deposits", json={"amount_cents": 0, "related_quote_id": 999}, headers=headers)
        assert resp.status_code == 400
        fields = {d["field"] for d in resp.json["details"]}
        assert {"client_id", "amount_cents", "vat_rate", "due_date", "related_quote_id"} <= fields

    def test_status_flow(self, client, headers, customer):
        deposit = client.post("/api/deposits", json=_deposit_form(customer.id), headers=headers).json["deposit"]
        url = f"/api/deposits/{deposit['id']}/status"
        assert client.post(url, json={"status": "PAID"}, headers=headers).status_code == 400
        assert client.post(url, json={"status": "SENT"}, headers=headers).status_code == 200
        resp = client.post(url, json={"status": "PAID"}, headers=headers)
        assert resp.json["deposit"]["status"] == "PAID"

    def test_from_quote(self, client, headers, customer):
        quote = client.post(
            "/api/quotes", json=quote_payload(customer.id, deposit_cents=20000), headers=headers,
        ).json["quote"]

        resp = client.post(f"/api/deposits/from-quote/{quote['id']}", headers=headers)
        assert resp.status_code == 201
        assert resp.json["deposit"]["status"] == "SENT"
        assert resp.json["deposit"]["related_quote_number"] == quote["number"]

        again = client.post(f"/api/deposits/from-quote/{quote['id']}", headers=headers)
        assert again.status_code == 409

    def test_from_quote_without_deposit(self, client, headers, customer):
        quote = client.post("/api/quotes", json=quote_payload(customer.id), headers=headers).json["quote"]
        assert client.post(f"/api/deposits/from-quote/{quote['id']}", headers=headers).status_code == 400

    def test_deleting_quote_detaches_deposit(self, client, headers, customer):
        quote = client.post("/api/quotes", json=quote_payload(customer.id), headers=headers).json["quote"]
        deposit = client.post(
            "/api/deposits", json=_deposit_form(customer.id, related_quote_id=quote["id"]), headers=headers,
        ).json["deposit"]

        client.delete(f"/api/quotes/{quote['id']}", headers=headers)
        current = client.get(f"/api/deposits/{deposit['id']}", headers=headers).json["deposit"]
        assert current["related_document_id"] is None


class TestReceipts:

    def test_create(self, client, headers, individual):
        resp = client.post("/api/receipts", json=_receipt_form(individual.id), headers=headers)
        assert resp.status_code == 201
        receipt = resp.json["receipt"]
        assert receipt["number"] == f"REC-{utcnow().year}-0001"
        assert receipt["status"] == "PAID"
        assert receipt["paid_at"] is not None
        assert receipt["vat_rate_bps"] == 0
        assert receipt["total_cents"] == 12000
        assert receipt["payment_method"] == "CARD"
        assert receipt["payment_method_label"] == "Carte bancaire"
        assert receipt["description"] == "Séance photo"
        assert receipt["issue_date"] == utctoday().isoformat()

    def test_explicit_date(self, client, headers, individual):
        resp = client.post("/api/receipts", json=_receipt_form(individual.id, date="2026-03-14"), headers=headers)
        assert resp.json["receipt"]["issue_date"] == "2026-03-14"

    def test_invalid_payment_method(self, client, headers, individual):
        resp = client.post(
            "/api/receipts", json=_receipt_form(individual.id, payment_method="BITCOIN"), headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json["details"][0]["field"] == "payment_method"

    def test_receipts_have_no_transitions(self, client, headers, individual):
        receipt = client.post("/api/receipts", json=_receipt_form(individual.id), headers=headers).json["receipt"]
        # No status route exists for receipts
        assert client.post(f"/api/receipts/{receipt['id']}/status", json={"status": "SENT"}, headers=headers).status_code in (404, 405)

    def test_list_and_next_number(self, client, headers, individual):
        client.post("/api/receipts", json=_receipt_form(individual.id), headers=headers)
        assert client.get("/api/receipts", headers=headers).json["count"] == 1
        next_number = client.get("/api/receipts/next-number", headers=headers).json["next_number"]
        assert next_number == f"REC-{utcnow().year}-0002"

    def test_delete(self, client, headers, individual):
        receipt = client.post("/api/receipts", json=_receipt_form(individual.id), headers=headers).json["receipt"]
        assert client.delete(f"/api/receipts/{receipt['id']}", headers=headers).json["deleted"] is True
        assert client.get(f"/api/receipts/{receipt['id']}", headers=headers).status_code == 404
