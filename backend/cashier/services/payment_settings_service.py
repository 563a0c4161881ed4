# Overview: Service-layer access to payment gateway settings.

from __future__ import annotations

from ..extensions import db
from ..models import PaymentSetting, PaymentGatewayConfig
from ..models.transactions import PAYMENT_METHOD_CASH


class PaymentSettingsError(Exception):
    """Raised for invalid payment setting changes."""
    pass


def normalize_method(payment_method: str | None) -> str:
    """Lower-cased method; empty means cash."""
    method = (payment_method or "").strip().lower()
    return method or PAYMENT_METHOD_CASH


def get_settings() -> PaymentSetting | None:
    return db.session.query(PaymentSetting).order_by(PaymentSetting.id).first()


def get_gateway_config(gateway: str) -> PaymentGatewayConfig | None:
    return db.session.query(PaymentGatewayConfig).filter_by(gateway=normalize_method(gateway)).first()


def is_gateway_ready(gateway: str) -> bool:
    if get_settings() is None:
        return False
    config = get_gateway_config(gateway)
    return bool(config and config.is_ready)


def enabled_gateways() -> list[dict]:
    """Ready gateways, in key order, as shown on the register."""
    if get_settings() is None:
        return []
    configs = (
        db.session.query(PaymentGatewayConfig)
        .filter_by(is_enabled=True)
        .order_by(PaymentGatewayConfig.gateway)
        .all()
    )
    return [
        {"gateway": config.gateway, "is_production": config.is_production}
        for config in configs
        if config.is_ready
    ]


def default_gateway() -> str:
    """
    Effective default payment method.

    Falls back to cash when nothing is configured or the stored default is
    not ready to take payments.
    """
    settings = get_settings()
    if settings is None:
        return PAYMENT_METHOD_CASH

    method = normalize_method(settings.default_gateway)
    if method != PAYMENT_METHOD_CASH and not is_gateway_ready(method):
        return PAYMENT_METHOD_CASH
    return method


def ensure_settings() -> PaymentSetting:
    settings = get_settings()
    if settings is None:
        settings = PaymentSetting(default_gateway=PAYMENT_METHOD_CASH)
        db.session.add(settings)
        db.session.flush()
    return settings


def configure_gateway(
    gateway: str,
    *,
    endpoint_url: str | None = None,
    server_key: str | None = None,
    is_enabled: bool | None = None,
    is_production: bool | None = None,
) -> PaymentGatewayConfig:
    """Create or update one gateway's configuration (None leaves a field unchanged)."""
    key = normalize_method(gateway)
    if key == PAYMENT_METHOD_CASH:
        raise PaymentSettingsError("cash is not a configurable gateway")

    ensure_settings()
    config = get_gateway_config(key)
    if config is None:
        config = PaymentGatewayConfig(gateway=key, is_enabled=False, is_production=False)
        db.session.add(config)

    if endpoint_url is not None:
        config.endpoint_url = endpoint_url
    if server_key is not None:
        config.server_key = server_key
    if is_enabled is not None:
        config.is_enabled = is_enabled
    if is_production is not None:
        config.is_production = is_production

    db.session.commit()
    return config


def set_default_gateway(gateway: str) -> PaymentSetting:
    key = normalize_method(gateway)
    if key != PAYMENT_METHOD_CASH and get_gateway_config(key) is None:
        raise PaymentSettingsError(f"Gateway {key} is not configured")

    settings = ensure_settings()
    settings.default_gateway = key
    db.session.commit()
    return settings
