"""
Pytest fixtures for FacturFlow backend tests.

Provides the application on an in-memory database, a per-test table wipe,
accounts with session tokens, and payload builders for the document forms.
"""

from datetime import timedelta

import pytest

from facturflow import create_app
from facturflow.extensions import db
from facturflow.models import Client, User
from facturflow.services import session_service
from facturflow.services.auth_service import hash_password
from facturflow.services.superpdp_client import reset_token_cache
from facturflow.time_utils import utctoday


PASSWORD = "Password123!"
PASSWORD_HASH = hash_password(PASSWORD)
CRON_SECRET = "cron-test-secret"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'APP_URL': 'https://app.facturflow.test',
        'CRON_SECRET': CRON_SECRET,
        'SENDGRID_API_KEY': '',
        'SUPERPDP_BASE_URL': 'https://superpdp.test',
        'SUPERPDP_CLIENT_ID': 'client-id',
        'SUPERPDP_CLIENT_SECRET': 'client-secret',
        'SIRET_API_URL': 'https://registry.test',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        db.session.rollback()
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()
        reset_token_cache()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, email: str, **fields) -> User:
    user = User(name=fields.pop("name", "Jean Dupont"), email=email, password_hash=PASSWORD_HASH, **fields)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user(db_session):
    """Account with a complete company profile."""
    return make_user(
        db_session,
        "jean@dupont-conseil.fr",
        company_name="Dupont Conseil",
        company_siren="123456789",
        company_siret="12345678900012",
        company_vat_number="FR32123456789",
        company_address="12 rue de la Paix",
        company_postal_code="75002",
        company_city="Paris",
        company_email="contact@dupont-conseil.fr",
        iban="FR7630006000011234567890189",
        bic="AGRIFRPP",
    )


@pytest.fixture(scope='function')
def other_user(db_session):
    return make_user(db_session, "marie@autre.fr", name="Marie Martin")


@pytest.fixture(scope='function')
def token(user):
    _, plaintext = session_service.create_session(user.id)
    return plaintext


@pytest.fixture(scope='function')
def headers(token):
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_headers(other_user):
    _, plaintext = session_service.create_session(other_user.id)
    return auth_headers(plaintext)


@pytest.fixture(scope='function')
def customer(db_session, user):
    """Company client with a SIRET (and so a SIREN)."""
    c = Client(
        user_id=user.id,
        client_type="COMPANY",
        company_name="Acme SAS",
        siren="552100554",
        siret="55210055400013",
        vat_number="FR40552100554",
        email="compta@acme.fr",
        address="5 avenue des Champs",
        postal_code="75008",
        city="Paris",
    )
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def individual(db_session, user):
    c = Client(
        user_id=user.id,
        client_type="INDIVIDUAL",
        first_name="Paul",
        last_name="Durand",
        email="paul.durand@example.fr",
        address="3 place du Marché",
        postal_code="69001",
        city="Lyon",
    )
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def cron_headers():
    return auth_headers(CRON_SECRET)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def invoice_payload(client_id, **overrides) -> dict:
    """Two lines: 2 x 500.00 + 1 x 250.00 = 1250.00 HT at 20 %."""
    today = utctoday()
    payload = {
        "client_id": client_id,
        "issue_date": today.isoformat(),
        "due_date": (today + timedelta(days=30)).isoformat(),
        "invoice_type": "basic",
        "vat_rate": "20",
        "lines": [
            {"description": "Développement", "quantity": "2", "unit": "jour", "unit_price_cents": 50000},
            {"description": "Recette", "quantity": "1", "unit_price_cents": 25000},
        ],
    }
    payload.update(overrides)
    return payload


def quote_payload(client_id, **overrides) -> dict:
    payload = invoice_payload(client_id)
    payload.pop("due_date")
    payload.pop("invoice_type")
    payload["quote_type"] = "basic"
    payload["valid_until"] = (utctoday() + timedelta(days=30)).isoformat()
    payload.update(overrides)
    return payload
