"""
Budget Alerts and In-App Notifications

Two consumers look at budget consumption:

1. The notification center: a list rebuilt on every render, one entry per
   budget that is exceeded (high priority) or above the warning threshold
   (medium priority), plus two informational entries.
2. The budget-exceeded alert: a side effect run by the finance store after
   every transaction/budget mutation and after load. It notifies at most
   once per (budget id, year-month).

DESIGN DECISION: The once-per-month guard is a flag in the LOCAL key-value
store (`budget_alert_<budget id>_<yyyy-MM>`), even in hosted mode. The
flag is device-local, so a second device may alert again. That is
accepted: a duplicate alert e-mail is harmless, a lost one is not.

Alert delivery never raises. A failed send is logged and the flag is still
written, so the user is not spammed with retries.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from financeapp.log import get_logger
from financeapp.models.finance import Budget, Category, Transaction
from financeapp.models.user import User
from financeapp.queries.aggregates import budget_spent, find_category
from financeapp.services.notifications import EmailNotificationService
from financeapp.services.preferences import load_notification_preferences
from financeapp.services.storage.local import LocalKeyValueStore


logger = get_logger(__name__)

DEFAULT_WARNING_THRESHOLD = 80.0
READ_NOTIFICATIONS_KEY = "readNotifications"


class BudgetStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class BudgetProgress:
    """A budget joined with its recomputed consumption."""
    budget: Budget
    category_name: str
    spent: Decimal
    percentage: float
    status: BudgetStatus

    @property
    def remaining(self) -> Decimal:
        return self.budget.amount - self.spent


@dataclass
class Notification:
    id: str
    type: str
    title: str
    message: str
    priority: NotificationPriority
    read: bool = False


def budget_progress(spent: Decimal, amount: Decimal) -> float:
    """Percentage of the budget consumed; 0 for a zero budget."""
    if amount <= 0:
        return 0.0
    return float(Decimal(spent) / Decimal(amount) * 100)


def budget_status(
    spent: Decimal,
    amount: Decimal,
    threshold: float = DEFAULT_WARNING_THRESHOLD,
) -> BudgetStatus:
    """
    Classify budget consumption.

    EXCEEDED when spent is strictly above the limit, WARNING when the
    percentage is strictly above the threshold, OK otherwise.
    """
    if spent > amount:
        return BudgetStatus.EXCEEDED
    if budget_progress(spent, amount) > threshold:
        return BudgetStatus.WARNING
    return BudgetStatus.OK


def summarize_budgets(
    budgets: list[Budget],
    categories: list[Category],
    transactions: list[Transaction],
    ref: Optional[date] = None,
    threshold: float = DEFAULT_WARNING_THRESHOLD,
) -> list[BudgetProgress]:
    result = []
    for budget in budgets:
        spent = budget_spent(budget, transactions, ref)
        category = find_category(categories, budget.category_id)
        result.append(
            BudgetProgress(
                budget=budget,
                category_name=category.name if category else "Categoría",
                spent=spent,
                percentage=budget_progress(spent, budget.amount),
                status=budget_status(spent, budget.amount, threshold),
            )
        )
    return result


def build_notifications(
    budgets: list[Budget],
    categories: list[Category],
    transactions: list[Transaction],
    ref: Optional[date] = None,
    threshold: float = DEFAULT_WARNING_THRESHOLD,
    read_ids: Optional[set[str]] = None,
) -> list[Notification]:
    """
    Build the notification center list.

    Budget entries come first, followed by the welcome and monthly
    report entries. Ids listed in read_ids are marked read.
    """
    notifications = []

    for progress in summarize_budgets(budgets, categories, transactions, ref, threshold):
        if progress.status == BudgetStatus.EXCEEDED:
            overspend = progress.spent - progress.budget.amount
            notifications.append(
                Notification(
                    id=f"budget-exceeded-{progress.budget.id}",
                    type="budget",
                    title="Presupuesto Excedido",
                    message=(
                        f"Has excedido el presupuesto de {progress.category_name} "
                        f"por ${overspend:.2f}"
                    ),
                    priority=NotificationPriority.HIGH,
                )
            )
        elif progress.status == BudgetStatus.WARNING:
            notifications.append(
                Notification(
                    id=f"budget-warning-{progress.budget.id}",
                    type="budget",
                    title="Presupuesto Casi Agotado",
                    message=(
                        f"Has usado el {progress.percentage:.1f}% del presupuesto "
                        f"de {progress.category_name}"
                    ),
                    priority=NotificationPriority.MEDIUM,
                )
            )

    notifications.append(
        Notification(
            id="welcome",
            type="info",
            title="Bienvenido a FinanceApp",
            message=(
                "Comienza registrando tus primeras transacciones para obtener "
                "insights de tus finanzas."
            ),
            priority=NotificationPriority.LOW,
        )
    )
    notifications.append(
        Notification(
            id="monthly-report",
            type="info",
            title="Reporte Mensual Disponible",
            message="Tu reporte financiero del mes está listo para revisar.",
            priority=NotificationPriority.MEDIUM,
        )
    )

    read_ids = read_ids or set()
    for notification in notifications:
        notification.read = notification.id in read_ids
    return notifications


def read_notification_ids(store: LocalKeyValueStore) -> set[str]:
    raw = store.get_json(READ_NOTIFICATIONS_KEY, [])
    return {str(item) for item in raw} if isinstance(raw, list) else set()


def mark_notifications_read(store: LocalKeyValueStore, ids: list[str]) -> None:
    """Persist read status for the given notification ids."""
    read = read_notification_ids(store) | set(ids)
    store.set_json(READ_NOTIFICATIONS_KEY, sorted(read))


def alert_key(budget_id: str, ref: date) -> str:
    """Dedup flag key for one budget in one calendar month."""
    return f"budget_alert_{budget_id}_{ref:%Y-%m}"


class BudgetAlertMonitor:
    """
    Sends the budget-exceeded alert at most once per budget per month.

    Args:
        local_store: Key-value store holding the dedup flags and preferences
        user_provider: Returns the signed-in user, or None
        notifier: E-mail client used in hosted mode
        local_mode: When True alerts are only logged
    """

    def __init__(
        self,
        local_store: LocalKeyValueStore,
        user_provider: Callable[[], Optional[User]],
        notifier: Optional[EmailNotificationService] = None,
        local_mode: bool = True,
    ):
        self._store = local_store
        self._user_provider = user_provider
        self._notifier = notifier
        self._local_mode = local_mode

    async def check_budget_alerts(
        self,
        transactions: list[Transaction],
        budgets: list[Budget],
        categories: list[Category],
        today: Optional[date] = None,
    ) -> list[str]:
        """
        Alert on every exceeded budget not yet alerted this month.

        Returns:
            Ids of the budgets alerted by this call
        """
        user = self._user_provider()
        if user is None or not transactions or not budgets:
            return []

        if not load_notification_preferences(self._store).budget_alerts:
            logger.debug("budget_alert_skipped", reason="preference_off")
            return []

        today = today or date.today()
        alerted = []

        for budget in budgets:
            category = find_category(categories, budget.category_id)
            if category is None:
                continue

            spent = budget_spent(budget, transactions, today)
            if not spent > budget.amount:
                continue

            key = alert_key(budget.id, today)
            if self._store.get_item(key) is not None:
                continue

            await self._send(user, category.name, spent, budget.amount)
            self._store.set_item(key, "true")
            alerted.append(budget.id)

        return alerted

    async def _send(
        self,
        user: User,
        category_name: str,
        spent: Decimal,
        amount: Decimal,
    ) -> None:
        if self._local_mode or self._notifier is None:
            logger.info(
                "budget_alert_logged",
                category=category_name,
                exceeded_by=str(spent - amount),
            )
            return

        try:
            await self._notifier.send_budget_alert(
                to=user.email,
                user_name=user.name,
                category_name=category_name,
                spent=spent,
                budget=amount,
            )
            logger.info("budget_alert_sent", category=category_name, to=user.email)
        except Exception as e:
            logger.error("budget_alert_failed", category=category_name, error=str(e))
