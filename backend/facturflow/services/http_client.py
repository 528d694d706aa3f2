# Overview: Shared httpx client construction for outbound integrations (company registry, e-invoicing gateway).

from __future__ import annotations

import httpx
from flask import current_app


def build_client(base_url: str, **kwargs) -> httpx.Client:
    """
    httpx.Client bound to base_url with the configured timeout.

    HTTP_TRANSPORT (normally unset) replaces the network transport; tests
    set it to an httpx.MockTransport.
    """
    return httpx.Client(
        base_url=base_url.rstrip("/"),
        timeout=float(current_app.config.get("HTTP_TIMEOUT_SECONDS", 15)),
        transport=current_app.config.get("HTTP_TRANSPORT"),
        headers={"Accept": "application/json"},
        **kwargs,
    )
