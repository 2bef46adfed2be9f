"""
E-mail Notification Service

DESIGN DECISION: The app never talks SMTP itself. Mail goes through a
serverless "send-email" function that accepts {to, subject, html, type}
and answers {success, error?}. We only need to POST JSON with a bearer
token, which httpx does for us.

A send counts as successful only when BOTH hold:
1. The HTTP status is 2xx
2. The JSON body says success: true

Everything else becomes a NotificationError carrying the server's
`error` string when it sent one.
"""

from datetime import datetime
from decimal import Decimal
from html import escape
from typing import Optional

import httpx

from financeapp.config import EmailSettings, get_settings
from financeapp.log import get_logger


logger = get_logger(__name__)

BUDGET_ALERT_TYPE = "budget_alert"
TEST_EMAIL_TYPE = "test"


class NotificationError(Exception):
    """Sending an e-mail failed."""
    pass


def _money(value: Decimal) -> str:
    return f"${Decimal(value):.2f}"


def build_budget_alert_email(
    to: str,
    user_name: str,
    category_name: str,
    spent: Decimal,
    budget: Decimal,
    signature: str = "El equipo de FinanceApp",
) -> dict:
    """Payload for the 'budget exceeded' e-mail."""
    html = f"""
        <h2>¡Alerta de Presupuesto!</h2>
        <p>Hola {escape(user_name)},</p>
        <p>Has excedido el presupuesto para la categoría <strong>{escape(category_name)}</strong>.</p>
        <div style="background-color: #fee2e2; padding: 15px; border-radius: 8px; margin: 15px 0;">
          <p><strong>Presupuesto:</strong> {_money(budget)}</p>
          <p><strong>Gastado:</strong> {_money(spent)}</p>
          <p><strong>Excedido por:</strong> {_money(spent - budget)}</p>
        </div>
        <p>Te recomendamos revisar tus gastos y ajustar tu presupuesto si es necesario.</p>
        <p>Saludos,<br>{escape(signature)}</p>
    """
    return {
        "to": to,
        "subject": f"⚠️ Presupuesto Excedido - {category_name}",
        "html": html,
        "type": BUDGET_ALERT_TYPE,
    }


def build_test_email(
    to: str,
    user_name: str,
    sent_at: Optional[datetime] = None,
    signature: str = "El equipo de FinanceApp",
) -> dict:
    """Payload for the settings page 'send test e-mail' button."""
    sent_at = sent_at or datetime.now()
    html = f"""
        <h2>¡Hola {escape(user_name)}!</h2>
        <p>Este es un correo de prueba desde FinanceApp.</p>
        <p>Si recibes este mensaje, las notificaciones por correo están funcionando correctamente.</p>
        <p>Fecha: {sent_at.strftime('%d/%m/%Y %H:%M:%S')}</p>
        <br>
        <p>Saludos,<br>{escape(signature)}</p>
    """
    return {
        "to": to,
        "subject": "Correo de Prueba - FinanceApp",
        "html": html,
        "type": TEST_EMAIL_TYPE,
    }


class EmailNotificationService:
    """
    Client for the send-email function.

    Args:
        settings: E-mail settings; read from the environment if omitted
        transport: Optional httpx transport (tests pass a MockTransport)
    """

    def __init__(
        self,
        settings: Optional[EmailSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings().email
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.auth_token:
            headers["Authorization"] = f"Bearer {self._settings.auth_token}"
        return headers

    async def send(self, payload: dict) -> dict:
        """
        POST one e-mail payload to the function.

        Returns:
            The decoded JSON body of a successful response

        Raises:
            NotificationError: On transport errors, non-2xx responses or
                               a body without success: true
        """
        if not self.is_configured:
            raise NotificationError("E-mail function is not configured")

        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._settings.function_url,
                    headers=self._headers(),
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.warning("email_transport_failed", type=payload.get("type"), error=str(e))
            raise NotificationError(f"No se pudo conectar al servidor: {e}")

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if not response.is_success:
            raise NotificationError(
                result.get("error") or "Error desconocido al enviar el correo"
            )
        if not result.get("success"):
            raise NotificationError(
                result.get("error") or "El servidor no pudo enviar el correo"
            )

        logger.info("email_sent", type=payload.get("type"), to=payload.get("to"))
        return result

    async def send_budget_alert(
        self,
        to: str,
        user_name: str,
        category_name: str,
        spent: Decimal,
        budget: Decimal,
    ) -> dict:
        return await self.send(
            build_budget_alert_email(
                to,
                user_name,
                category_name,
                spent,
                budget,
                signature=self._settings.sender_name,
            )
        )

    async def send_test_email(self, to: str, user_name: str) -> dict:
        return await self.send(
            build_test_email(to, user_name, signature=self._settings.sender_name)
        )
