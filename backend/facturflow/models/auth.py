from __future__ import annotations

from ..extensions import db
from facturflow.time_utils import to_utc_z


class User(db.Model):
    """
    Account owner: login identity, company profile and numbering counters.

    Every client and document row is scoped to exactly one user. The
    company profile is the issuer block printed on documents and sent as
    the seller party of e-invoices.

    Numbering counters are incremented with a single UPDATE statement by
    numbering_service; never write them through the ORM.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Company profile (issuer)
    company_name = db.Column(db.String(255), nullable=True)
    company_siren = db.Column(db.String(9), nullable=True)
    company_siret = db.Column(db.String(14), nullable=True)
    company_vat_number = db.Column(db.String(32), nullable=True)
    company_address = db.Column(db.String(255), nullable=True)
    company_postal_code = db.Column(db.String(10), nullable=True)
    company_city = db.Column(db.String(128), nullable=True)
    company_country = db.Column(db.String(2), nullable=False, default="FR")
    company_email = db.Column(db.String(255), nullable=True)
    company_phone = db.Column(db.String(32), nullable=True)
    iban = db.Column(db.String(34), nullable=True)
    bic = db.Column(db.String(11), nullable=True)

    # Numbering
    invoice_prefix = db.Column(db.String(10), nullable=False, default="FAC")
    quote_prefix = db.Column(db.String(10), nullable=False, default="DEV")
    next_invoice_number = db.Column(db.Integer, nullable=False, default=1)
    next_quote_number = db.Column(db.Integer, nullable=False, default=1)
    next_deposit_number = db.Column(db.Integer, nullable=False, default=1)
    next_receipt_number = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def has_company_profile(self) -> bool:
        return bool(self.company_name and self.company_siren and self.company_address and self.company_city)

    def company_dict(self) -> dict:
        return {
            "company_name": self.company_name,
            "company_siren": self.company_siren,
            "company_siret": self.company_siret,
            "company_vat_number": self.company_vat_number,
            "company_address": self.company_address,
            "company_postal_code": self.company_postal_code,
            "company_city": self.company_city,
            "company_country": self.company_country,
            "company_email": self.company_email,
            "company_phone": self.company_phone,
            "iban": self.iban,
            "bic": self.bic,
            "invoice_prefix": self.invoice_prefix,
            "quote_prefix": self.quote_prefix,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "is_active": self.is_active,
            "has_company_profile": self.has_company_profile,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session tokens.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 30-day absolute timeout
    - 7-day idle timeout
    - Revocable on logout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
