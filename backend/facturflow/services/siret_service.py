# Overview: Service-layer lookup of French companies by SIRET through the public recherche-entreprises API.

"""
Company lookup (SIRET / SIREN).

The recherche-entreprises API is public and keyless. Results feed the
client and company forms: name, head-office address, legal form, NAF code,
staff range and a computed intra-community VAT number.
"""

from __future__ import annotations

import re

import httpx
from flask import current_app

from .http_client import build_client


SEARCH_LIMIT = 10

STAFF_RANGES = {
    "00": "0 salarié",
    "01": "1 ou 2 salariés",
    "02": "3 à 5 salariés",
    "03": "6 à 9 salariés",
    "11": "10 à 19 salariés",
    "12": "20 à 49 salariés",
    "21": "50 à 99 salariés",
    "22": "100 à 199 salariés",
    "31": "200 à 249 salariés",
    "32": "250 à 499 salariés",
    "41": "500 à 999 salariés",
    "42": "1000 à 1999 salariés",
    "51": "2000 à 4999 salariés",
    "52": "5000 à 9999 salariés",
    "53": "10000 salariés et plus",
}

_ARRONDISSEMENT_RE = re.compile(r"-\d+$")


class SiretLookupError(Exception):
    """Lookup failed. status_code is the HTTP status the route should return."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


def clean_siret(value: str | None) -> str:
    return re.sub(r"\s", "", value or "")


def vat_key(siren: str) -> str:
    return f"{(12 + 3 * (int(siren) % 97)) % 97:02d}"


def vat_number_for(siren: str | None) -> str | None:
    if not siren or not siren.isdigit() or len(siren) != 9:
        return None
    return f"FR{vat_key(siren)}{siren}"


def strip_arrondissement(city: str | None) -> str:
    # "PARIS-1" -> "PARIS"
    return _ARRONDISSEMENT_RE.sub("", city or "")


def staff_range_label(code: str | None) -> str | None:
    if not code or code == "NN":
        return None
    return STAFF_RANGES.get(code, f"{code} salariés")


def parse_company(result: dict, siret: str | None = None) -> dict:
    """Normalize one API result (head office block) into form fields."""
    siege = result.get("siege") or {}
    siren = result.get("siren") or ""
    address = " ".join(
        str(part) for part in (siege.get("numero_voie"), siege.get("type_voie"), siege.get("libelle_voie")) if part
    )
    return {
        "name": result.get("nom_complet") or "",
        "siret": siege.get("siret") or siret or "",
        "siren": siren,
        "address": address or (siege.get("adresse") or ""),
        "postal_code": siege.get("code_postal") or "",
        "city": strip_arrondissement(siege.get("libelle_commune")),
        "legal_form": result.get("libelle_nature_juridique") or result.get("nature_juridique"),
        "naf_code": result.get("activite_principale"),
        "staff_range": staff_range_label(siege.get("tranche_effectif_salarie")),
        "creation_date": result.get("date_creation"),
        "vat_number": vat_number_for(siren),
    }


def _search(query: str, per_page: int) -> list[dict]:
    base_url = current_app.config["SIRET_API_URL"]
    try:
        with build_client(base_url) as client:
            response = client.get("/search", params={"q": query, "per_page": per_page})
    except httpx.TimeoutException:
        current_app.logger.warning("Company registry timeout q=%s", query)
        raise SiretLookupError("Company registry is not responding", 504)
    except httpx.RequestError as exc:
        current_app.logger.warning("Company registry unreachable: %s", exc)
        raise SiretLookupError("Company registry is unreachable", 502)

    if response.status_code == 429:
        raise SiretLookupError("Too many lookups, retry in a moment", 429)
    if response.status_code != 200:
        current_app.logger.warning("Company registry error status=%s", response.status_code)
        raise SiretLookupError("Error while searching the company registry", 502)

    return (response.json() or {}).get("results") or []


def lookup_siret(siret: str) -> dict:
    siret = clean_siret(siret)
    if not siret.isdigit() or len(siret) != 14:
        raise SiretLookupError("SIRET must be 14 digits", 400)

    results = _search(siret, 1)
    if not results:
        raise SiretLookupError("No company found for this SIRET", 404)
    return parse_company(results[0], siret)


def search_companies(query: str) -> list[dict]:
    query = (query or "").strip()
    if len(query) < 3:
        raise SiretLookupError("Search needs at least 3 characters", 400)
    return [parse_company(r) for r in _search(query, SEARCH_LIMIT)[:SEARCH_LIMIT]]
