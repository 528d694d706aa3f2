"""
Invoice API tests.

Verifies:
- Official numbering on creation, temporary numbers for drafts
- Totals are recomputed server-side (client-sent totals ignored)
- Only DRAFT invoices are editable
- Status changes follow the transition table
- Duplicate, idempotent delete, listing filters and month summary
- Per-account scoping
"""

from datetime import timedelta

from conftest import invoice_payload
from facturflow.time_utils import utcnow, utctoday


def _create(client, headers, client_id, **overrides):
    resp = client.post("/api/invoices", json=invoice_payload(client_id, **overrides), headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json["invoice"]


class TestCreateInvoice:

    def test_create_allocates_number_and_totals(self, client, headers, customer):
        invoice = _create(client, headers, customer.id)
        assert invoice["number"] == f"FAC-{utcnow().year}-0001"
        assert invoice["status"] == "DRAFT"
        assert invoice["subtotal_cents"] == 125000
        assert invoice["tax_total_cents"] == 25000
        assert invoice["total_cents"] == 150000
        assert invoice["net_to_pay_cents"] == 150000
        assert len(invoice["lines"]) == 2
        assert invoice["lines"][0]["unit"] == "jour"
        assert invoice["lines"][1]["unit"] == "unité"
        assert invoice["client"]["id"] == customer.id
        assert invoice["issuer"]["siren"] == "123456789"

    def test_client_supplied_totals_ignored(self, client, headers, customer):
        invoice = _create(client, headers, customer.id, total_cents=1, subtotal_cents=1)
        assert invoice["total_cents"] == 150000

    def test_discount_and_deposit(self, client, headers, customer):
        invoice = _create(
            client, headers, customer.id,
            discount_type="PERCENT", discount_value="10", deposit_cents=35000,
        )
        assert invoice["discount_cents"] == 12500
        assert invoice["net_cents"] == 112500
        assert invoice["tax_total_cents"] == 22500
        assert invoice["total_cents"] == 135000
        assert invoice["net_to_pay_cents"] == 100000

    def test_reduced_vat_rate(self, client, headers, customer):
        invoice = _create(client, headers, customer.id, vat_rate="5.5")
        assert invoice["vat_rate_bps"] == 550
        assert invoice["tax_total_cents"] == 6875

    def test_artisan_line_categories(self, client, headers, customer):
        lines = [
            {"description": "Pose", "quantity": "4", "unit_price_cents": 4500, "category": "labor"},
            {"description": "Carrelage", "quantity": "12.5", "unit_price_cents": 2990, "category": "MATERIAL"},
        ]
        invoice = _create(client, headers, customer.id, invoice_type="artisan", lines=lines)
        assert [l["category"] for l in invoice["lines"]] == ["LABOR", "MATERIAL"]
        assert invoice["subtotal_cents"] == 18000 + 37375

    def test_inline_new_client(self, client, headers, db_session):
        new_client = {
            "name": "Gamma Studio",
            "email": "hello@gamma.fr",
            "siret": "44306184100047",
            "address": "1 rue Neuve",
            "city": "Lille",
        }
        first = _create(client, headers, None, new_client=new_client)
        second = _create(client, headers, None, new_client=new_client)
        assert first["client"]["type"] == "COMPANY"
        assert first["client"]["siren"] == "443061841"
        assert first["client_id"] == second["client_id"]

    def test_validation_errors(self, client, headers, customer):
        today = utctoday()
        resp = client.post("/api/invoices", json=invoice_payload(
            customer.id,
            lines=[{"description": "", "quantity": "0", "unit_price_cents": -5}],
            due_date=(today - timedelta(days=1)).isoformat(),
            vat_rate="7",
        ), headers=headers)
        assert resp.status_code == 400
        fields = {d["field"] for d in resp.json["details"]}
        assert {"lines[0].description", "lines[0].quantity", "lines[0].unit_price_cents", "vat_rate", "due_date"} <= fields

    def test_no_lines(self, client, headers, customer):
        resp = client.post("/api/invoices", json=invoice_payload(customer.id, lines=[]), headers=headers)
        assert resp.status_code == 400
        assert resp.json["details"][0]["field"] == "lines"

    def test_missing_client(self, client, headers, db_session):
        resp = client.post("/api/invoices", json=invoice_payload(None), headers=headers)
        assert resp.status_code == 400

    def test_unknown_client(self, client, headers, db_session):
        resp = client.post("/api/invoices", json=invoice_payload(424242), headers=headers)
        assert resp.status_code == 404


class TestDrafts:

    def test_draft_consumes_no_number(self, client, headers, customer):
        resp = client.post("/api/invoices/drafts", json=invoice_payload(customer.id), headers=headers)
        assert resp.status_code == 201
        draft = resp.json["invoice"]
        assert draft["number"].startswith("DRAFT-")

        preview = client.get("/api/invoices/next-number", headers=headers).json["next_number"]
        assert preview == f"FAC-{utcnow().year}-0001"

    def test_draft_promoted_in_place(self, client, headers, customer):
        draft = client.post("/api/invoices/drafts", json=invoice_payload(customer.id), headers=headers).json["invoice"]
        resp = client.post(
            "/api/invoices",
            json=invoice_payload(customer.id, draft_id=draft["id"]),
            headers=headers,
        )
        assert resp.status_code == 201
        invoice = resp.json["invoice"]
        assert invoice["id"] == draft["id"]
        assert invoice["number"] == f"FAC-{utcnow().year}-0001"

    def test_draft_overwritten(self, client, headers, customer):
        draft = client.post("/api/invoices/drafts", json=invoice_payload(customer.id), headers=headers).json["invoice"]
        resp = client.post(
            f"/api/invoices/drafts?draft_id={draft['id']}",
            json=invoice_payload(customer.id, notes="Updated"),
            headers=headers,
        )
        assert resp.json["invoice"]["id"] == draft["id"]
        assert resp.json["invoice"]["notes"] == "Updated"
        assert client.get("/api/invoices", headers=headers).json["count"] == 1


class TestEditAndStatus:

    def test_update_draft(self, client, headers, customer):
        invoice = _create(client, headers, customer.id)
        resp = client.put(
            f"/api/invoices/{invoice['id']}",
            json=invoice_payload(customer.id, lines=[{"description": "Audit", "quantity": "1", "unit_price_cents": 80000}]),
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json["invoice"]["total_cents"] == 96000
        assert resp.json["invoice"]["number"] == invoice["number"]

    def test_sent_invoice_not_editable(self, client, headers, customer):
        invoice = _create(client, headers, customer.id)
        client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "SENT"}, headers=headers)
        resp = client.put(f"/api/invoices/{invoice['id']}", json=invoice_payload(customer.id), headers=headers)
        assert resp.status_code == 400
        assert resp.json["details"]["status"] == "SENT"

    def test_status_change(self, client, headers, customer):
        invoice = _create(client, headers, customer.id)
        resp = client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "SENT"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json["invoice"]["status"] == "SENT"
        assert resp.json["invoice"]["sent_at"] is not None

        resp = client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "PAID"}, headers=headers)
        assert resp.json["invoice"]["paid_at"] is not None

    def test_invalid_transition_leaves_status(self, client, headers, customer):
        invoice = _create(client, headers, customer.id)
        resp = client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "REMINDED"}, headers=headers)
        assert resp.status_code == 400
        assert resp.json["details"] == {"from": "DRAFT", "to": "REMINDED"}
        current = client.get(f"/api/invoices/{invoice['id']}", headers=headers).json["invoice"]
        assert current["status"] == "DRAFT"

    def test_unknown_status(self, client, headers, customer):
        invoice = _create(client, headers, customer.id)
        resp = client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "VIEWED"}, headers=headers)
        assert resp.status_code == 400


class TestDuplicateDelete:

    def test_duplicate(self, client, headers, customer):
        invoice = _create(client, headers, customer.id, discount_type="AMOUNT", discount_value=5000)
        client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "PAID"}, headers=headers)

        resp = client.post(f"/api/invoices/{invoice['id']}/duplicate", headers=headers)
        assert resp.status_code == 201
        copy = resp.json["invoice"]
        assert copy["id"] != invoice["id"]
        assert copy["number"] == f"FAC-{utcnow().year}-0002"
        assert copy["status"] == "DRAFT"
        assert copy["paid_at"] is None
        assert copy["total_cents"] == invoice["total_cents"]
        assert len(copy["lines"]) == 2

    def test_delete_idempotent(self, client, headers, customer):
        invoice = _create(client, headers, customer.id)
        first = client.delete(f"/api/invoices/{invoice['id']}", headers=headers)
        second = client.delete(f"/api/invoices/{invoice['id']}", headers=headers)
        assert first.status_code == second.status_code == 200
        assert first.json["deleted"] is True
        assert second.json["deleted"] is False


class TestListing:

    def test_status_filter(self, client, headers, customer):
        a = _create(client, headers, customer.id)
        _create(client, headers, customer.id)
        client.post(f"/api/invoices/{a['id']}/status", json={"status": "PAID"}, headers=headers)

        resp = client.get("/api/invoices?status=paid", headers=headers)
        assert [i["id"] for i in resp.json["items"]] == [a["id"]]

    def test_month_filter(self, client, headers, customer):
        _create(client, headers, customer.id)
        this_month = utcnow().strftime("%Y-%m")
        assert client.get(f"/api/invoices?month={this_month}", headers=headers).json["count"] == 1
        assert client.get("/api/invoices?month=1999-01", headers=headers).json["count"] == 0

    def test_bad_month(self, client, headers, db_session):
        assert client.get("/api/invoices?month=2026-13", headers=headers).status_code == 400

    def test_summary(self, client, headers, customer):
        a = _create(client, headers, customer.id)
        _create(client, headers, customer.id)
        client.post(f"/api/invoices/{a['id']}/status", json={"status": "PAID"}, headers=headers)

        summary = client.get("/api/invoices/summary", headers=headers).json
        assert summary["total"] == {"count": 2, "total_cents": 300000}
        assert summary["paid"] == {"count": 1, "total_cents": 150000}
        assert summary["pending"] == {"count": 1, "total_cents": 150000}
        assert summary["unpaid"]["count"] == 0


class TestIsolation:

    def test_other_account(self, client, headers, other_headers, customer):
        invoice = _create(client, headers, customer.id)
        assert client.get(f"/api/invoices/{invoice['id']}", headers=other_headers).status_code == 404
        assert client.get(f"/api/invoices/{invoice['id']}/pdf", headers=other_headers).status_code == 404
        resp = client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "PAID"}, headers=other_headers)
        assert resp.status_code == 404
        assert client.get("/api/invoices", headers=other_headers).json["count"] == 0

    def test_cannot_use_other_accounts_client(self, client, other_headers, customer):
        resp = client.post("/api/invoices", json=invoice_payload(customer.id), headers=other_headers)
        assert resp.status_code == 404
