from __future__ import annotations

from ..extensions import db
from facturflow.time_utils import to_utc_z


CLIENT_TYPES = ("COMPANY", "INDIVIDUAL")


class Client(db.Model):
    """
    Customer of a FacturFlow user: a company (SIREN/SIRET) or an individual.

    Email is unique per owning user; it is also the key used to reuse an
    existing client when a document is created with an inline "quick client".
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.UniqueConstraint("user_id", "email", name="uq_clients_user_email"),
        db.Index("ix_clients_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    client_type = db.Column(db.String(16), nullable=False, default="COMPANY")

    company_name = db.Column(db.String(255), nullable=True)
    siren = db.Column(db.String(9), nullable=True)
    siret = db.Column(db.String(14), nullable=True)
    vat_number = db.Column(db.String(32), nullable=True)

    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)

    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    address = db.Column(db.String(255), nullable=True)
    postal_code = db.Column(db.String(10), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    country = db.Column(db.String(2), nullable=False, default="FR")

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("clients", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def display_name(self) -> str:
        if self.company_name:
            return self.company_name
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.client_type,
            "display_name": self.display_name,
            "company_name": self.company_name,
            "siren": self.siren,
            "siret": self.siret,
            "vat_number": self.vat_number,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "postal_code": self.postal_code,
            "city": self.city,
            "country": self.country,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
