"""
Company profile tests.

Verifies:
- Profile read / update with SIREN, IBAN and BIC validation
- Custom numbering prefixes and next-number preview
"""

from facturflow.time_utils import utcnow


def _profile(**overrides):
    profile = {
        "company_name": "Studio Lumière",
        "company_siren": "987 654 321",
        "company_siret": "98765432100015",
        "company_vat_number": "fr 12 987654321",
        "company_address": "4 quai des Brumes",
        "company_postal_code": "44000",
        "company_city": "Nantes",
        "company_email": "bonjour@studio-lumiere.fr",
        "iban": "FR76 3000 6000 0112 3456 7890 189",
        "bic": "agrifrpp",
    }
    profile.update(overrides)
    return profile


def test_get_company(client, headers, user):
    resp = client.get("/api/company", headers=headers)
    assert resp.status_code == 200
    assert resp.json["company"]["company_siren"] == user.company_siren


def test_update_company_normalizes(client, headers):
    resp = client.put("/api/company", json=_profile(), headers=headers)
    assert resp.status_code == 200
    company = resp.json["company"]
    assert company["company_siren"] == "987654321"
    assert company["company_vat_number"] == "FR12987654321"
    assert company["iban"] == "FR7630006000011234567890189"
    assert company["bic"] == "AGRIFRPP"


def test_siren_required(client, headers):
    resp = client.put("/api/company", json=_profile(company_siren=""), headers=headers)
    assert resp.status_code == 400
    assert any(d["field"] == "company_siren" for d in resp.json["details"])


def test_siret_must_match_siren(client, headers):
    resp = client.put("/api/company", json=_profile(company_siret="11111111100015"), headers=headers)
    assert resp.status_code == 400
    assert any(d["field"] == "company_siret" for d in resp.json["details"])


def test_invalid_iban(client, headers):
    resp = client.put("/api/company", json=_profile(iban="NOT-AN-IBAN"), headers=headers)
    assert resp.status_code == 400


def test_custom_prefixes_drive_numbering(client, headers):
    client.put("/api/company", json=_profile(invoice_prefix="fact", quote_prefix="q"), headers=headers)
    resp = client.get("/api/company/next-numbers", headers=headers)
    year = utcnow().year
    assert resp.json["next_numbers"]["invoice"] == f"FACT-{year}-0001"
    assert resp.json["next_numbers"]["quote"] == f"Q-{year}-0001"
    assert resp.json["next_numbers"]["deposit"] == f"DEP-{year}-0001"
