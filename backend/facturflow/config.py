# backend/facturflow/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/facturflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///facturflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Public base URL, used for quote accept/refuse links and redirects
    APP_URL = os.environ.get("APP_URL", "http://localhost:3000")

    # Comma-separated list of frontend origins allowed by CORS
    CORS_ORIGINS = os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

    # Bearer secret expected by the scheduled job endpoints
    CRON_SECRET = os.environ.get("CRON_SECRET", "")

    # Outbound email (SendGrid)
    SENDGRID_API_KEY = os.environ.get("SENDGRID_API_KEY", "")
    MAIL_FROM = os.environ.get("MAIL_FROM", "factures@facturflow.fr")
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "FacturFlow")

    # E-invoicing gateway (SuperPDP, EN16931 / Peppol)
    SUPERPDP_BASE_URL = os.environ.get("SUPERPDP_BASE_URL", "https://api.superpdp.tech")
    SUPERPDP_CLIENT_ID = os.environ.get("SUPERPDP_CLIENT_ID", "")
    SUPERPDP_CLIENT_SECRET = os.environ.get("SUPERPDP_CLIENT_SECRET", "")

    # Public company registry lookup
    SIRET_API_URL = os.environ.get("SIRET_API_URL", "https://recherche-entreprises.api.gouv.fr")

    HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "15"))
