"""
Streamlit Frontend for FinanceApp

The pages render against the finance store and call its operations.

DESIGN PRINCIPLES:
1. Every write goes through the store, which writes storage first
2. Storage and service errors become an on-screen error message
3. Derived figures are recomputed on every rerun, never cached
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import streamlit as st

from financeapp.alerts import (
    BudgetStatus,
    NotificationPriority,
    build_notifications,
    mark_notifications_read,
    read_notification_ids,
)
from financeapp.config import validate_all_settings
from financeapp.models.finance import (
    NEW_ID,
    Account,
    AccountType,
    Budget,
    BudgetPeriod,
    Category,
    RecurringPeriod,
    Transaction,
    TransactionType,
)
from financeapp.models.user import NotificationPreferences, UserPreferences
from financeapp.orchestrator import FinanceApp, create_app_components
from financeapp.queries.reports import (
    ReportPeriod,
    calendar_month,
    expenses_by_category,
    monthly_trend,
    period_summary,
    top_categories,
)
from financeapp.services.auth import AuthError
from financeapp.services.backup import BackupError
from financeapp.services.image import AvatarUploadError
from financeapp.services.notifications import NotificationError
from financeapp.services.preferences import (
    load_notification_preferences,
    load_user_preferences,
    save_notification_preferences,
    save_user_preferences,
)
from financeapp.services.storage import StorageError
from financeapp.store import FinanceStore


# Page configuration
st.set_page_config(
    page_title="FinanceApp",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

PERIOD_LABELS = {
    ReportPeriod.CURRENT: "Este mes",
    ReportPeriod.PREVIOUS: "Mes anterior",
    ReportPeriod.YEAR: "Este año",
}

TYPE_LABELS = {
    TransactionType.INCOME: "Ingreso",
    TransactionType.EXPENSE: "Gasto",
}

ACCOUNT_LABELS = {
    AccountType.CHECKING: "Cuenta corriente",
    AccountType.SAVINGS: "Ahorros",
    AccountType.CREDIT: "Crédito",
    AccountType.CASH: "Efectivo",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_app() -> FinanceApp:
    """Get or create this browser session's application components."""
    if "finance_app" not in st.session_state:
        app = create_app_components()
        run_async(app.start())
        st.session_state.finance_app = app
    return st.session_state.finance_app


def money(value: Decimal) -> str:
    return f"${value:,.2f}"


def attempt(coro, success: str = "") -> bool:
    """Run a store/service call, turning known errors into messages."""
    try:
        run_async(coro)
    except (StorageError, AuthError, AvatarUploadError, BackupError, NotificationError) as e:
        st.error(f"Error: {e}")
        return False
    if success:
        st.success(success)
    return True


def main():
    """Main application entry point."""
    try:
        app = get_app()
    except StorageError as e:
        st.error(f"No se pudo cargar la información: {e}")
        st.stop()

    if app.store is None:
        render_login_page(app)
        return

    store = app.store
    profile = app.auth.profile

    # Sidebar navigation
    st.sidebar.title("💰 FinanceApp")
    if profile:
        st.sidebar.markdown(f"**{profile.name}**")
    if app.local_mode:
        st.sidebar.caption("Modo demo: datos guardados localmente")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Ir a:",
        [
            "📊 Dashboard",
            "💸 Transacciones",
            "🏷️ Categorías",
            "🎯 Presupuestos",
            "🏦 Cuentas",
            "📅 Calendario",
            "📈 Reportes",
            "⚙️ Configuración",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("Cerrar sesión"):
        run_async(app.logout())
        st.rerun()

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(app, store)
    elif page == "💸 Transacciones":
        render_transactions_page(store)
    elif page == "🏷️ Categorías":
        render_categories_page(store)
    elif page == "🎯 Presupuestos":
        render_budgets_page(store)
    elif page == "🏦 Cuentas":
        render_accounts_page(store)
    elif page == "📅 Calendario":
        render_calendar_page(store)
    elif page == "📈 Reportes":
        render_reports_page(app, store)
    elif page == "⚙️ Configuración":
        render_settings_page(app)


def render_login_page(app: FinanceApp):
    """Render the login / register page."""
    st.title("💰 FinanceApp")

    if app.local_mode:
        st.info("Modo demo. Usa demo@financeapp.com / demo123")

    login_tab, register_tab = st.tabs(["Iniciar sesión", "Registrarse"])

    with login_tab:
        with st.form("login"):
            email = st.text_input("Correo electrónico")
            password = st.text_input("Contraseña", type="password")
            if st.form_submit_button("Entrar", type="primary"):
                if attempt(app.login(email, password)):
                    st.rerun()

    with register_tab:
        with st.form("register"):
            name = st.text_input("Nombre")
            email = st.text_input("Correo electrónico", key="register_email")
            password = st.text_input("Contraseña", type="password", key="register_password")
            if st.form_submit_button("Crear cuenta"):
                if attempt(app.register(name, email, password)):
                    st.rerun()


def render_notifications(app: FinanceApp, store: FinanceStore):
    read_ids = read_notification_ids(app.local_store)
    notifications = build_notifications(
        store.budgets,
        store.categories,
        store.transactions,
        read_ids=read_ids,
    )
    unread = [n for n in notifications if not n.read]

    with st.expander(f"🔔 Notificaciones ({len(unread)})"):
        for notification in notifications:
            text = f"**{notification.title}**: {notification.message}"
            if notification.read:
                st.caption(text)
            elif notification.priority == NotificationPriority.HIGH:
                st.error(text)
            elif notification.priority == NotificationPriority.MEDIUM:
                st.warning(text)
            else:
                st.info(text)
        if unread and st.button("Marcar todas como leídas"):
            mark_notifications_read(app.local_store, [n.id for n in unread])
            st.rerun()


def render_dashboard_page(app: FinanceApp, store: FinanceStore):
    """Render the dashboard."""
    st.title("📊 Dashboard")
    render_notifications(app, store)

    income = store.get_monthly_income()
    expenses = store.get_monthly_expenses()

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Balance total", money(store.get_current_balance()))
    col2.metric("Ingresos del mes", money(income))
    col3.metric("Gastos del mes", money(expenses))
    col4.metric("Ahorro del mes", money(income - expenses))

    st.markdown("### Gastos por categoría")
    by_category = expenses_by_category(store.transactions, store.categories)
    if by_category:
        st.bar_chart({
            "Categoría": [c.name for c in by_category],
            "Monto": [float(c.amount) for c in by_category],
        }, x="Categoría", y="Monto")
    else:
        st.caption("Sin gastos este mes")

    st.markdown("### Presupuestos")
    for progress in store.get_budget_progress():
        st.markdown(
            f"**{progress.category_name}**: {money(progress.spent)} de "
            f"{money(progress.budget.amount)}"
        )
        st.progress(min(progress.percentage, 100.0) / 100)
        if progress.status == BudgetStatus.EXCEEDED:
            st.caption(f"Excedido por {money(-progress.remaining)}")
        elif progress.status == BudgetStatus.WARNING:
            st.caption(f"{progress.percentage:.1f}% utilizado")

    st.markdown("### Transacciones recientes")
    render_transaction_table(store, store.transactions[:5])


def render_transaction_table(store: FinanceStore, transactions: list[Transaction]):
    if not transactions:
        st.caption("Sin transacciones")
        return
    st.dataframe(
        [
            {
                "Fecha": t.date.isoformat(),
                "Descripción": t.description,
                "Categoría": store.get_category_name(t.category_id),
                "Tipo": TYPE_LABELS[t.type],
                "Monto": float(t.amount if t.is_income else -t.amount),
            }
            for t in transactions
        ],
        use_container_width=True,
        hide_index=True,
    )


def transaction_form(store: FinanceStore, key: str, existing: Optional[Transaction] = None):
    """Form fields for a transaction; returns the values or None."""
    with st.form(key):
        type_ = st.selectbox(
            "Tipo",
            list(TransactionType),
            index=list(TransactionType).index(existing.type) if existing else 1,
            format_func=TYPE_LABELS.get,
        )
        categories = [c for c in store.categories if c.type == type_] or store.categories
        category_ids = [c.id for c in categories]
        category_id = st.selectbox(
            "Categoría",
            category_ids,
            index=category_ids.index(existing.category_id)
            if existing and existing.category_id in category_ids else 0,
            format_func=store.get_category_name,
        )
        amount = st.number_input(
            "Monto",
            min_value=0.0,
            step=1.0,
            value=float(existing.amount) if existing else 0.0,
        )
        description = st.text_input("Descripción", value=existing.description if existing else "")
        when = st.date_input("Fecha", value=existing.date if existing else date.today())
        account_ids = [a.id for a in store.accounts]
        account_id = st.selectbox(
            "Cuenta",
            [None] + account_ids,
            index=(account_ids.index(existing.account_id) + 1)
            if existing and existing.account_id in account_ids else 0,
            format_func=lambda a: "Sin cuenta" if a is None else next(
                acc.name for acc in store.accounts if acc.id == a
            ),
        )
        recurring = st.checkbox("Recurrente", value=existing.recurring if existing else False)
        period = st.selectbox("Periodicidad", list(RecurringPeriod), format_func=lambda p: p.value)

        if not st.form_submit_button("Guardar", type="primary"):
            return None

    try:
        return Transaction(
            id=existing.id if existing else NEW_ID,
            type=type_,
            amount=Decimal(str(amount)),
            category_id=category_id,
            description=description,
            date=when,
            account_id=account_id,
            recurring=recurring,
            recurring_period=period if recurring else None,
        )
    except ValueError as e:
        st.error(f"Datos inválidos: {e}")
        return None


def render_transactions_page(store: FinanceStore):
    """Render the transactions page."""
    st.title("💸 Transacciones")

    with st.expander("➕ Nueva transacción"):
        transaction = transaction_form(store, "new_transaction")
        if transaction and attempt(store.add_transaction(transaction), "Transacción agregada"):
            st.rerun()

    query = st.text_input("Buscar", placeholder="Descripción o categoría")
    results = store.search_transactions(query)
    render_transaction_table(store, results)

    if not results:
        return

    st.markdown("### Editar o eliminar")
    selected_id = st.selectbox(
        "Transacción",
        [t.id for t in results],
        format_func=lambda tid: next(
            f"{t.date} · {t.description or store.get_category_name(t.category_id)} · {money(t.amount)}"
            for t in results if t.id == tid
        ),
    )
    selected = next(t for t in results if t.id == selected_id)

    edited = transaction_form(store, f"edit_{selected_id}", existing=selected)
    if edited and attempt(store.update_transaction(edited), "Transacción actualizada"):
        st.rerun()

    if st.button("🗑️ Eliminar transacción"):
        if attempt(store.delete_transaction(selected_id), "Transacción eliminada"):
            st.rerun()


def render_categories_page(store: FinanceStore):
    """Render the categories page."""
    st.title("🏷️ Categorías")

    with st.form("new_category"):
        col1, col2, col3 = st.columns(3)
        name = col1.text_input("Nombre")
        type_ = col2.selectbox("Tipo", list(TransactionType), format_func=TYPE_LABELS.get)
        color = col3.color_picker("Color", "#3B82F6")
        if st.form_submit_button("Agregar categoría"):
            try:
                category = Category(name=name, type=type_, color=color.upper())
            except ValueError as e:
                st.error(f"Datos inválidos: {e}")
            else:
                if attempt(store.add_category(category), "Categoría agregada"):
                    st.rerun()

    for type_ in TransactionType:
        st.markdown(f"### {TYPE_LABELS[type_]}s")
        for category in [c for c in store.categories if c.type == type_]:
            col1, col2 = st.columns([4, 1])
            col1.markdown(
                f"<span style='color:{category.color}'>●</span> {category.name} "
                f"· {money(store.get_category_expenses(category.id))} este mes",
                unsafe_allow_html=True,
            )
            if col2.button("Eliminar", key=f"delete_category_{category.id}"):
                if attempt(store.delete_category(category.id)):
                    st.rerun()


def render_budgets_page(store: FinanceStore):
    """Render the budgets page."""
    st.title("🎯 Presupuestos")

    expense_categories = [c for c in store.categories if c.type == TransactionType.EXPENSE]
    budget_ids = [NEW_ID] + [b.id for b in store.budgets]

    selected_id = st.selectbox(
        "Presupuesto",
        budget_ids,
        format_func=lambda bid: "Nuevo presupuesto" if bid == NEW_ID else next(
            store.get_category_name(b.category_id) for b in store.budgets if b.id == bid
        ),
    )
    existing = next((b for b in store.budgets if b.id == selected_id), None)

    with st.form(f"budget_{selected_id}"):
        category_ids = [c.id for c in expense_categories]
        category_id = st.selectbox(
            "Categoría",
            category_ids,
            index=category_ids.index(existing.category_id)
            if existing and existing.category_id in category_ids else 0,
            format_func=store.get_category_name,
        )
        amount = st.number_input(
            "Límite",
            min_value=0.0,
            step=10.0,
            value=float(existing.amount) if existing else 0.0,
        )
        period = st.selectbox(
            "Periodo",
            list(BudgetPeriod),
            index=list(BudgetPeriod).index(existing.period) if existing else 0,
            format_func=lambda p: "Mensual" if p == BudgetPeriod.MONTHLY else "Anual",
        )
        if st.form_submit_button("Guardar", type="primary"):
            if category_id is None:
                st.error("Crea primero una categoría de gasto")
            else:
                budget = Budget(
                    id=selected_id,
                    category_id=category_id,
                    amount=Decimal(str(amount)),
                    period=period,
                )
                if attempt(store.save_budget(budget), "Presupuesto guardado"):
                    st.rerun()

    if existing and st.button("🗑️ Eliminar presupuesto"):
        if attempt(store.delete_budget(existing.id), "Presupuesto eliminado"):
            st.rerun()

    st.markdown("---")
    for progress in store.get_budget_progress():
        st.markdown(
            f"**{progress.category_name}** ({progress.budget.period.value}): "
            f"{money(progress.spent)} / {money(progress.budget.amount)}"
        )
        st.progress(min(progress.percentage, 100.0) / 100)


def render_accounts_page(store: FinanceStore):
    """Render the accounts page."""
    st.title("🏦 Cuentas")
    st.metric("Balance total", money(store.get_current_balance()))

    account_ids = [NEW_ID] + [a.id for a in store.accounts]
    selected_id = st.selectbox(
        "Cuenta",
        account_ids,
        format_func=lambda aid: "Nueva cuenta" if aid == NEW_ID else next(
            a.name for a in store.accounts if a.id == aid
        ),
    )
    existing = next((a for a in store.accounts if a.id == selected_id), None)

    with st.form(f"account_{selected_id}"):
        name = st.text_input("Nombre", value=existing.name if existing else "")
        type_ = st.selectbox(
            "Tipo",
            list(AccountType),
            index=list(AccountType).index(existing.type) if existing else 0,
            format_func=ACCOUNT_LABELS.get,
        )
        balance = st.number_input(
            "Saldo",
            step=100.0,
            value=float(existing.balance) if existing else 0.0,
        )
        color = st.color_picker("Color", existing.color if existing else "#3B82F6")
        if st.form_submit_button("Guardar", type="primary"):
            try:
                account = Account(
                    id=selected_id,
                    name=name,
                    type=type_,
                    balance=Decimal(str(balance)),
                    color=color.upper(),
                )
            except ValueError as e:
                st.error(f"Datos inválidos: {e}")
            else:
                if attempt(store.save_account(account), "Cuenta guardada"):
                    st.rerun()

    if existing and st.button("🗑️ Eliminar cuenta"):
        if attempt(store.delete_account(existing.id), "Cuenta eliminada"):
            st.rerun()


def render_calendar_page(store: FinanceStore):
    """Render the monthly calendar."""
    st.title("📅 Calendario")
    ref = st.date_input("Mes", value=date.today())

    days = calendar_month(store.transactions, ref)
    week = st.columns(7)
    for day in days:
        column = week[day.day.weekday()]
        with column:
            st.markdown(f"**{day.day.day}**")
            if day.income:
                st.caption(f"+{money(day.income)}")
            if day.expenses:
                st.caption(f"-{money(day.expenses)}")
        if day.day.weekday() == 6:
            week = st.columns(7)

    active = [d for d in days if d.has_activity]
    if active:
        selected = st.selectbox(
            "Detalle del día",
            [d.day for d in active],
            format_func=lambda d: d.isoformat(),
        )
        render_transaction_table(
            store, next(d.transactions for d in active if d.day == selected)
        )


def render_reports_page(app: FinanceApp, store: FinanceStore):
    """Render the reports page."""
    st.title("📈 Reportes")

    period = st.selectbox("Periodo", list(ReportPeriod), format_func=PERIOD_LABELS.get)
    summary = period_summary(store.transactions, period)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Ingresos", money(summary.income))
    col2.metric("Gastos", money(summary.expenses))
    col3.metric("Neto", money(summary.net))
    col4.metric("Gasto promedio", money(summary.average_expense))

    st.markdown("### Principales categorías de gasto")
    for total in top_categories(store.transactions, store.categories, period):
        st.markdown(
            f"<span style='color:{total.color}'>●</span> {total.name}: {money(total.amount)}",
            unsafe_allow_html=True,
        )

    st.markdown("### Tendencia de los últimos 6 meses")
    trend = monthly_trend(store.transactions, months=6)
    st.line_chart({
        "Mes": [m.label for m in trend],
        "Ingresos": [float(m.income) for m in trend],
        "Gastos": [float(m.expenses) for m in trend],
    }, x="Mes")

    st.download_button(
        "📥 Exportar reporte",
        data=app.backup.export_report(period),
        file_name=app.backup.report_filename(),
        mime="application/json",
    )


def render_settings_page(app: FinanceApp):
    """Render the settings page."""
    st.title("⚙️ Configuración")
    profile = app.auth.profile

    st.markdown("### Perfil")
    if profile.avatar_url:
        st.image(profile.avatar_url, width=96)
    with st.form("profile"):
        name = st.text_input("Nombre", value=profile.name)
        currency = st.text_input("Moneda", value=profile.currency, max_chars=3)
        if st.form_submit_button("Guardar perfil"):
            attempt(app.auth.update_profile(name=name, currency=currency.upper()), "Perfil actualizado")

    avatar = st.file_uploader(
        "Foto de perfil",
        type=app.avatars.supported_formats,
    )
    if avatar and st.button("Subir foto"):
        if attempt(app.upload_avatar(avatar.read()), "Foto actualizada"):
            st.rerun()

    st.markdown("### Notificaciones")
    prefs = load_notification_preferences(app.local_store)
    with st.form("notifications"):
        email_notifications = st.checkbox("Notificaciones por correo", value=prefs.email_notifications)
        budget_alerts = st.checkbox("Alertas de presupuesto", value=prefs.budget_alerts)
        monthly_reports = st.checkbox("Reportes mensuales", value=prefs.monthly_reports)
        transaction_alerts = st.checkbox("Alertas de transacciones", value=prefs.transaction_alerts)
        if st.form_submit_button("Guardar notificaciones"):
            save_notification_preferences(
                app.local_store,
                NotificationPreferences(
                    email_notifications=email_notifications,
                    budget_alerts=budget_alerts,
                    monthly_reports=monthly_reports,
                    transaction_alerts=transaction_alerts,
                ),
            )
            st.success("Preferencias guardadas")

    if st.button("✉️ Enviar correo de prueba"):
        try:
            to = run_async(app.send_test_email())
        except NotificationError as e:
            st.error(f"Error al enviar correo de prueba. Detalles: {e}")
        else:
            st.success(
                f"Correo de prueba enviado correctamente a {to}. "
                "Revisa tu bandeja de entrada y carpeta de spam."
            )

    st.markdown("### Preferencias")
    user_prefs = load_user_preferences(app.local_store)
    with st.form("preferences"):
        pref_currency = st.selectbox(
            "Moneda", ["MXN", "USD", "EUR"],
            index=["MXN", "USD", "EUR"].index(user_prefs.currency)
            if user_prefs.currency in ("MXN", "USD", "EUR") else 0,
        )
        language = st.selectbox("Idioma", ["es", "en"], index=0 if user_prefs.language == "es" else 1)
        theme = st.selectbox("Tema", ["light", "dark"], index=0 if user_prefs.theme == "light" else 1)
        date_format = st.text_input("Formato de fecha", value=user_prefs.date_format)
        if st.form_submit_button("Guardar preferencias"):
            save_user_preferences(
                app.local_store,
                UserPreferences(
                    currency=pref_currency,
                    language=language,
                    theme=theme,
                    date_format=date_format,
                ),
            )
            st.success("Preferencias guardadas")

    st.markdown("### Datos")
    st.download_button(
        "📥 Exportar datos",
        data=app.backup.export_snapshot(),
        file_name=app.backup.backup_filename(),
        mime="application/json",
    )
    backup_file = st.file_uploader("Importar respaldo", type=["json"])
    if backup_file and st.button("📤 Importar"):
        text = backup_file.read().decode("utf-8")
        if attempt(app.backup.import_snapshot(text), "Datos importados correctamente"):
            st.rerun()

    st.markdown("### Estado de conexión")
    status = validate_all_settings()
    services = [
        ("Google Sheets (Almacenamiento)", "google_sheets"),
        ("Cloudinary (Imágenes)", "cloudinary"),
        ("Correo", "email"),
    ]
    for label, key in services:
        if status.get(key, False):
            st.success(f"✅ {label} - Configurado")
        else:
            error = status.get(f"{key}_error", "No configurado")
            st.warning(f"⚪ {label} - {error}")


if __name__ == "__main__":
    main()
