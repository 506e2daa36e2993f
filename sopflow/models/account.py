"""
SOPFlow
Account models read by the workflow engine.

Models:
    - Client:    the paying account; carries the business classification
    - Location:  one physical/service location managed for a client

Client and Location rows are owned by the surrounding CRM. The engine only
reads them to decide which SOP tasks apply to a location.
"""

from datetime import datetime, timezone

from sopflow.models import db
from sopflow.models.enums import BusinessType, enum_type


class Client(db.Model):
    __tablename__ = "clients"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    business_type = db.Column(
        enum_type(BusinessType, "ck_client_business_type"),
        nullable=False, default=BusinessType.TRADITIONAL,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    locations = db.relationship(
        "Location", back_populates="client",
        cascade="all, delete-orphan", lazy="dynamic",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "business_type": self.business_type.value,
        }

    def __repr__(self):
        return f"<Client {self.id}: {self.name}>"


class Location(db.Model):
    __tablename__ = "locations"

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(
        db.Integer, db.ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(300), default="")
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    client = db.relationship("Client", back_populates="locations", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "client_id": self.client_id,
            "name": self.name,
            "address": self.address,
        }

    def __repr__(self):
        return f"<Location {self.id}: {self.name}>"
