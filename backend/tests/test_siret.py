"""
Company lookup tests (registry mocked with httpx.MockTransport).

Verifies:
- Result normalization (address, arrondissement, staff range, VAT number)
- Error statuses: bad input 400, not found 404, rate limit 429,
  registry failure 502, timeout 504
"""

import httpx
import pytest

from facturflow.services.siret_service import (
    clean_siret,
    parse_company,
    staff_range_label,
    strip_arrondissement,
    vat_number_for,
)


ACME = {
    "siren": "552100554",
    "nom_complet": "ACME",
    "nature_juridique": "5710",
    "activite_principale": "62.01Z",
    "date_creation": "1990-01-01",
    "siege": {
        "siret": "55210055400013",
        "numero_voie": "5",
        "type_voie": "AV",
        "libelle_voie": "DES CHAMPS ELYSEES",
        "code_postal": "75008",
        "libelle_commune": "PARIS-8",
        "tranche_effectif_salarie": "12",
    },
}


def registry(status=200, results=None, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if status != 200:
            return httpx.Response(status, json={"erreur": "x"})
        return httpx.Response(200, json={"results": results or [], "total_results": len(results or [])})
    return httpx.MockTransport(handler)


@pytest.fixture
def use_transport(app, monkeypatch):
    def _use(transport):
        monkeypatch.setitem(app.config, "HTTP_TRANSPORT", transport)
    return _use


class TestParsing:

    def test_parse_company(self):
        company = parse_company(ACME)
        assert company["name"] == "ACME"
        assert company["siret"] == "55210055400013"
        assert company["address"] == "5 AV DES CHAMPS ELYSEES"
        assert company["city"] == "PARIS"
        assert company["postal_code"] == "75008"
        assert company["staff_range"] == "20 à 49 salariés"
        assert company["naf_code"] == "62.01Z"
        assert company["vat_number"] == "FR96552100554"

    def test_vat_number(self):
        assert vat_number_for("123456789") == "FR32123456789"
        assert vat_number_for("12345") is None
        assert vat_number_for(None) is None

    def test_helpers(self):
        assert clean_siret(" 552 100 554 00013 ") == "55210055400013"
        assert strip_arrondissement("LYON-3") == "LYON"
        assert strip_arrondissement("SAINT-ETIENNE") == "SAINT-ETIENNE"
        assert staff_range_label("NN") is None
        assert staff_range_label("99") == "99 salariés"


class TestLookupRoutes:

    def test_lookup(self, client, headers, use_transport):
        calls = []
        use_transport(registry(results=[ACME], calls=calls))
        resp = client.get("/api/siret/55210055400013", headers=headers)
        assert resp.status_code == 200
        assert resp.json["company"]["siren"] == "552100554"
        assert calls[0].url.params["q"] == "55210055400013"
        assert calls[0].url.host == "registry.test"

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/siret/55210055400013").status_code == 401

    def test_invalid_siret(self, client, headers, use_transport):
        calls = []
        use_transport(registry(calls=calls))
        assert client.get("/api/siret/1234", headers=headers).status_code == 400
        assert calls == []

    def test_not_found(self, client, headers, use_transport):
        use_transport(registry(results=[]))
        assert client.get("/api/siret/55210055400013", headers=headers).status_code == 404

    @pytest.mark.parametrize("upstream, expected", [(429, 429), (500, 502), (404, 502)])
    def test_registry_errors(self, client, headers, use_transport, upstream, expected):
        use_transport(registry(status=upstream))
        assert client.get("/api/siret/55210055400013", headers=headers).status_code == expected

    def test_timeout(self, client, headers, use_transport):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)
        use_transport(httpx.MockTransport(handler))
        assert client.get("/api/siret/55210055400013", headers=headers).status_code == 504

    def test_search(self, client, headers, use_transport):
        use_transport(registry(results=[ACME, dict(ACME, siren="123456789", nom_complet="ACME BIS")]))
        resp = client.get("/api/siret/search?q=acme", headers=headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 2
        assert [c["name"] for c in resp.json["items"]] == ["ACME", "ACME BIS"]

    def test_search_too_short(self, client, headers, use_transport):
        use_transport(registry())
        assert client.get("/api/siret/search?q=ab", headers=headers).status_code == 400
