import pytest

from cashier.services import payment_settings_service
from cashier.services.payment_settings_service import PaymentSettingsError


def test_nothing_configured(app):
    assert payment_settings_service.get_settings() is None
    assert payment_settings_service.default_gateway() == "cash"
    assert payment_settings_service.enabled_gateways() == []
    assert payment_settings_service.is_gateway_ready("midtrans") is False


def test_normalize_method():
    assert payment_settings_service.normalize_method(None) == "cash"
    assert payment_settings_service.normalize_method("  ") == "cash"
    assert payment_settings_service.normalize_method(" Midtrans ") == "midtrans"


def test_ready_requires_enabled_endpoint_and_key(app):
    payment_settings_service.configure_gateway("xendit", endpoint_url="https://x.test/pay", is_enabled=True)
    assert payment_settings_service.is_gateway_ready("xendit") is False

    payment_settings_service.configure_gateway("xendit", server_key="sk")
    assert payment_settings_service.is_gateway_ready("xendit") is True

    payment_settings_service.configure_gateway("xendit", is_enabled=False)
    assert payment_settings_service.is_gateway_ready("xendit") is False


def test_default_falls_back_to_cash_when_not_ready(ready_gateway):
    payment_settings_service.set_default_gateway(ready_gateway)
    assert payment_settings_service.default_gateway() == ready_gateway

    payment_settings_service.configure_gateway(ready_gateway, is_enabled=False)
    assert payment_settings_service.default_gateway() == "cash"


def test_cash_is_not_configurable(app):
    with pytest.raises(PaymentSettingsError):
        payment_settings_service.configure_gateway("cash", is_enabled=True)


def test_default_must_be_known(app):
    with pytest.raises(PaymentSettingsError):
        payment_settings_service.set_default_gateway("unknown")
