from __future__ import annotations

from ..extensions import db
from cashier.time_utils import to_utc_z


class PaymentSetting(db.Model):
    """
    Store-wide payment preferences (single row).

    default_gateway is "cash" or the key of a PaymentGatewayConfig row.
    """
    __tablename__ = "payment_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    default_gateway = db.Column(db.String(32), nullable=False, default="cash")

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "default_gateway": self.default_gateway,
            "updated_at": to_utc_z(self.updated_at),
        }


class PaymentGatewayConfig(db.Model):
    """
    Credentials and switches for one external payment provider.

    READY: enabled, with both an endpoint and a server key on file.
    """
    __tablename__ = "payment_gateway_configs"
    __table_args__ = (
        db.UniqueConstraint("gateway", name="uq_payment_gateway_configs_gateway"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    gateway = db.Column(db.String(32), nullable=False)

    is_enabled = db.Column(db.Boolean, nullable=False, default=False)
    is_production = db.Column(db.Boolean, nullable=False, default=False)

    endpoint_url = db.Column(db.String(512), nullable=True)
    server_key = db.Column(db.String(255), nullable=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_ready(self) -> bool:
        return bool(self.is_enabled and self.endpoint_url and self.server_key)

    def to_dict(self) -> dict:
        # server_key is never serialized
        return {
            "id": self.id,
            "gateway": self.gateway,
            "is_enabled": self.is_enabled,
            "is_production": self.is_production,
            "is_ready": self.is_ready,
            "endpoint_url": self.endpoint_url,
            "updated_at": to_utc_z(self.updated_at),
        }
