"""
Client API tests.

Verifies:
- Create / read / update / delete with validation
- Email unique per account
- Per-account scoping (another account's client is not found)
- Delete refused while documents reference the client
"""

from conftest import invoice_payload


def _client_form(**overrides):
    form = {
        "type": "COMPANY",
        "name": "Beta SARL",
        "email": "contact@beta.fr",
        "siret": "732 829 320 00074",
        "address": "8 rue du Port",
        "postal_code": "13002",
        "city": "Marseille",
    }
    form.update(overrides)
    return form


class TestClientCrud:

    def test_create_company(self, client, headers):
        resp = client.post("/api/clients", json=_client_form(), headers=headers)
        assert resp.status_code == 201
        data = resp.json["client"]
        assert data["company_name"] == "Beta SARL"
        assert data["siret"] == "73282932000074"
        assert data["siren"] == "732829320"
        assert data["document_count"] == 0

    def test_create_individual_splits_name(self, client, headers):
        resp = client.post(
            "/api/clients",
            json=_client_form(type="INDIVIDUAL", name="Claire de Lune", siret=None),
            headers=headers,
        )
        assert resp.status_code == 201
        data = resp.json["client"]
        assert data["first_name"] == "Claire"
        assert data["last_name"] == "de Lune"
        assert data["display_name"] == "Claire de Lune"

    def test_validation_errors_listed_per_field(self, client, headers):
        resp = client.post("/api/clients", json={"type": "COMPANY", "siret": "123"}, headers=headers)
        assert resp.status_code == 400
        fields = {d["field"] for d in resp.json["details"]}
        assert {"name", "email", "siret", "address", "city"} <= fields

    def test_postal_code_must_be_five_digits(self, client, headers):
        for bad in ("1300", "13002A", "F-13002"):
            resp = client.post("/api/clients", json=_client_form(postal_code=bad), headers=headers)
            assert resp.status_code == 400
            assert [d["field"] for d in resp.json["details"]] == ["postal_code"]

        resp = client.post("/api/clients", json=_client_form(postal_code="13 002"), headers=headers)
        assert resp.status_code == 201
        assert resp.json["client"]["postal_code"] == "13002"

    def test_duplicate_email(self, client, headers, customer):
        resp = client.post("/api/clients", json=_client_form(email=customer.email), headers=headers)
        assert resp.status_code == 409

    def test_list_and_search(self, client, headers, customer, individual):
        resp = client.get("/api/clients", headers=headers)
        assert resp.json["count"] == 2

        resp = client.get("/api/clients?search=durand", headers=headers)
        assert [c["id"] for c in resp.json["items"]] == [individual.id]

    def test_update(self, client, headers, customer):
        resp = client.put(
            f"/api/clients/{customer.id}",
            json=_client_form(name="Acme Group", email=customer.email),
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json["client"]["company_name"] == "Acme Group"

    def test_delete(self, client, headers, individual):
        assert client.delete(f"/api/clients/{individual.id}", headers=headers).status_code == 200
        assert client.get(f"/api/clients/{individual.id}", headers=headers).status_code == 404

    def test_delete_refused_with_documents(self, client, headers, customer):
        client.post("/api/invoices", json=invoice_payload(customer.id), headers=headers)
        resp = client.delete(f"/api/clients/{customer.id}", headers=headers)
        assert resp.status_code == 409
        assert resp.json["details"]["document_count"] == 1

    def test_stats(self, client, headers, customer):
        created = client.post("/api/invoices", json=invoice_payload(customer.id), headers=headers).json["invoice"]
        client.post(f"/api/invoices/{created['id']}/status", json={"status": "PAID"}, headers=headers)
        data = client.get(f"/api/clients/{customer.id}", headers=headers).json["client"]
        assert data["document_count"] == 1
        assert data["total_invoiced_cents"] == 150000
        assert data["total_paid_cents"] == 150000


class TestClientIsolation:

    def test_other_account_gets_404(self, client, other_headers, customer):
        assert client.get(f"/api/clients/{customer.id}", headers=other_headers).status_code == 404
        assert client.delete(f"/api/clients/{customer.id}", headers=other_headers).status_code == 404

    def test_other_account_list_is_empty(self, client, other_headers, customer):
        assert client.get("/api/clients", headers=other_headers).json["count"] == 0
