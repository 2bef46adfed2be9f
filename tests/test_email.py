"""Tests for the e-mail function client (httpx MockTransport, no network)."""

import asyncio
import json
from datetime import datetime
from decimal import Decimal

import httpx
import pytest

from financeapp.config import EmailSettings
from financeapp.services.notifications import (
    EmailNotificationService,
    NotificationError,
    build_budget_alert_email,
    build_test_email,
)


FUNCTION_URL = "https://functions.example.com/send-email"


def make_service(handler, **overrides) -> EmailNotificationService:
    settings = EmailSettings(
        _env_file=None,
        function_url=FUNCTION_URL,
        auth_token="anon-key",
        **overrides,
    )
    return EmailNotificationService(settings, transport=httpx.MockTransport(handler))


class TestEmailBuilders:
    """Tests for the e-mail payloads."""

    def test_budget_alert_payload(self):
        payload = build_budget_alert_email(
            "ana@example.com", "Ana", "Alimentación", Decimal("450"), Decimal("400")
        )
        assert payload["to"] == "ana@example.com"
        assert payload["subject"] == "⚠️ Presupuesto Excedido - Alimentación"
        assert payload["type"] == "budget_alert"
        assert "$400.00" in payload["html"]
        assert "$450.00" in payload["html"]
        assert "$50.00" in payload["html"]
        assert "El equipo de FinanceApp" in payload["html"]

    def test_names_are_html_escaped(self):
        payload = build_budget_alert_email(
            "x@example.com", "<b>Ana</b>", "Café & Pan", Decimal("2"), Decimal("1")
        )
        assert "&lt;b&gt;Ana&lt;/b&gt;" in payload["html"]
        assert "Café &amp; Pan" in payload["html"]

    def test_test_email_payload(self):
        payload = build_test_email("ana@example.com", "Ana", sent_at=datetime(2024, 3, 15, 9, 30))
        assert payload["subject"] == "Correo de Prueba - FinanceApp"
        assert payload["type"] == "test"
        assert "15/03/2024 09:30:00" in payload["html"]


class TestEmailNotificationService:
    """Tests for sending through the e-mail function."""

    def test_successful_send(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "message": "sent"})

        service = make_service(handler)
        result = asyncio.run(service.send_test_email("ana@example.com", "Ana"))

        assert result["success"] is True
        assert seen["url"] == FUNCTION_URL
        assert seen["auth"] == "Bearer anon-key"
        assert set(seen["body"]) == {"to", "subject", "html", "type"}
        assert seen["body"]["type"] == "test"

    def test_budget_alert_uses_configured_signature(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True})

        service = make_service(handler, sender_name="Equipo Finanzas")
        asyncio.run(service.send_budget_alert(
            "ana@example.com", "Ana", "Transporte", Decimal("250"), Decimal("200")
        ))
        assert "Equipo Finanzas" in bodies[0]["html"]

    def test_http_error_carries_server_message(self):
        def handler(request):
            return httpx.Response(500, json={"success": False, "error": "postmark rejected"})

        service = make_service(handler)
        with pytest.raises(NotificationError, match="postmark rejected"):
            asyncio.run(service.send_test_email("ana@example.com", "Ana"))

    def test_ok_status_without_success_flag_fails(self):
        def handler(request):
            return httpx.Response(200, json={"success": False})

        service = make_service(handler)
        with pytest.raises(NotificationError, match="El servidor no pudo enviar el correo"):
            asyncio.run(service.send_test_email("ana@example.com", "Ana"))

    def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad gateway")

        service = make_service(handler)
        with pytest.raises(NotificationError, match="Error desconocido"):
            asyncio.run(service.send_test_email("ana@example.com", "Ana"))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = make_service(handler)
        with pytest.raises(NotificationError, match="No se pudo conectar"):
            asyncio.run(service.send_test_email("ana@example.com", "Ana"))

    def test_not_configured(self):
        service = EmailNotificationService(EmailSettings(_env_file=None, function_url=None))
        assert not service.is_configured
        with pytest.raises(NotificationError):
            asyncio.run(service.send_test_email("ana@example.com", "Ana"))
