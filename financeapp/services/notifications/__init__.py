"""Outbound notification services package."""

from financeapp.services.notifications.email_service import (
    EmailNotificationService,
    NotificationError,
    build_budget_alert_email,
    build_test_email,
)

__all__ = [
    "EmailNotificationService",
    "NotificationError",
    "build_budget_alert_email",
    "build_test_email",
]
