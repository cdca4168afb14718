"""Interface web para a gestão do time."""
from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional, Tuple

from flask import Flask, Response, flash, g, redirect, render_template, request, send_file, session, url_for
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from . import __version__, export, messaging, metrics, models
from .account import AccountActions
from .config import Config
from .context import AppContext, Notification, build_context
from .formatting import format_currency, format_date, format_datetime, format_number
from .gateway import GatewayError
from .storage import JsonBackend, parse_date
from .stores import MessageStore, PlayerStore, ProfileStore, SettingsStore, TransactionStore

logger = logging.getLogger(__name__)

PUBLIC_ENDPOINTS = {"auth_page", "sign_in", "sign_up", "static", "avatar_file", "health"}
MONTHS = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]


def _flash_notification(notification: Notification) -> None:
    message = notification.title
    if notification.description:
        message = f"{message} {notification.description}"
    flash(message, "error" if notification.destructive else "success")


def create_app(config: Any = Config) -> Flask:
    """Criar e configurar a aplicação Flask."""

    app = Flask(__name__)
    app.config.from_object(config)
    app.config.from_prefixed_env("GESTAO")
    Path(app.config["DATA_DIR"]).mkdir(parents=True, exist_ok=True)

    def get_context() -> AppContext:
        if "app_context" not in g:
            data_dir = Path(app.config["DATA_DIR"])
            backend = JsonBackend(data_dir, public_url_base=f"{request.script_root}/avatars")
            backend.auth.set_session(session.get("user_id"))
            g.app_context = build_context(
                backend,
                default_theme=app.config["DEFAULT_THEME"],
                default_language=app.config["DEFAULT_LANGUAGE"],
                sink=_flash_notification,
            )
            # Theme and language come from the signed-in account's settings row.
            if g.app_context.session.user is not None:
                g.app_context.use_settings(settings_store().record)
        return g.app_context

    def _store(name: str, factory):
        if name not in g:
            setattr(g, name, factory(get_context()))
        return getattr(g, name)

    def players_store() -> PlayerStore:
        return _store("players_store", PlayerStore)

    def transactions_store() -> TransactionStore:
        return _store("transactions_store", TransactionStore)

    def messages_store() -> MessageStore:
        return _store("messages_store", MessageStore)

    def profile_store() -> ProfileStore:
        return _store("profile_store", ProfileStore)

    def settings_store() -> SettingsStore:
        return _store("settings_store", SettingsStore)

    @app.teardown_request
    def close_context(_exc: Optional[BaseException]) -> None:
        context = g.pop("app_context", None)
        if context is not None:
            context.session.close()

    @app.before_request
    def require_login():
        if request.endpoint in PUBLIC_ENDPOINTS or request.endpoint is None:
            return None
        if get_context().session.user is None:
            session.pop("user_id", None)
            return redirect(url_for("auth_page"))
        return None

    @app.context_processor
    def inject_globals():
        context = get_context()
        return {
            "current_user": context.session.user,
            "theme": context.theme.theme,
            "language": context.language.language,
            "t": context.language.t,
            "version": __version__,
        }

    app.add_template_filter(format_currency, "format_currency")
    app.add_template_filter(format_date, "format_date")
    app.add_template_filter(format_datetime, "format_datetime")
    app.add_template_filter(format_number, "format_number")

    def _flash_invalid(message: str) -> None:
        flash(message, "error")

    def _parse_amount(field: str) -> Optional[float]:
        value = request.form.get(field, "").strip().replace(",", ".")
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    def _handle_date(field: str) -> Tuple[bool, Optional[date]]:
        value = request.form.get(field)
        try:
            parsed = parse_date(value)
        except ValueError:
            return False, None
        return True, parsed

    def _text(field: str) -> Optional[str]:
        return request.form.get(field, "").strip() or None

    # Auth ---------------------------------------------------------------
    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/auth")
    def auth_page():
        if get_context().session.user is not None:
            return redirect(url_for("dashboard"))
        return render_template("auth.html", title="Entrar")

    @app.post("/auth/login")
    def sign_in():
        actions = AccountActions(get_context())
        user = actions.sign_in(request.form.get("email", ""), request.form.get("password", ""))
        if user is None:
            return redirect(url_for("auth_page"))
        session["user_id"] = user.id
        return redirect(url_for("dashboard"))

    @app.post("/auth/cadastro")
    def sign_up():
        actions = AccountActions(get_context())
        user = actions.sign_up(
            request.form.get("email", ""),
            request.form.get("password", ""),
            display_name=_text("display_name"),
        )
        if user is None:
            return redirect(url_for("auth_page"))
        session["user_id"] = user.id
        return redirect(url_for("dashboard"))

    @app.post("/sair")
    def sign_out():
        AccountActions(get_context()).sign_out()
        session.pop("user_id", None)
        return redirect(url_for("auth_page"))

    # Dashboard ----------------------------------------------------------
    @app.get("/")
    def dashboard():
        players = players_store()
        transactions = transactions_store()
        today = date.today()
        return render_template(
            "dashboard.html",
            title="Dashboard",
            active_page="dashboard",
            stats=metrics.dashboard_stats(players.items, transactions.items, today),
            activity=metrics.recent_activity(transactions.items, players.items),
            summary=metrics.monthly_summary(transactions.items, today),
        )

    # Players ------------------------------------------------------------
    @app.get("/jogadores")
    def players_page():
        store = players_store()
        search = request.args.get("busca", "")
        status = request.args.get("status", metrics.ALL)
        editing_player = None
        edit_id = request.args.get("edit")
        if edit_id:
            editing_player = store.get(edit_id)
            if editing_player is None:
                _flash_invalid("Jogador selecionado para edição não encontrado.")
        profile = profile_store().record
        return render_template(
            "players.html",
            title="Jogadores",
            active_page="players",
            players=metrics.filter_players(store.items, search, status),
            total_players=len(store.items),
            search=search,
            status_filter=status,
            editing_player=editing_player,
            default_fee=profile.monthly_fee if profile else 200,
            player_statuses=[item.value for item in models.PlayerStatus],
            payment_statuses=[item.value for item in models.PaymentStatus],
        )

    @app.post("/jogadores")
    def save_player():
        player_id = request.form.get("player_id") or None
        target = url_for("players_page", edit=player_id) if player_id else url_for("players_page")
        ok_due, due_date = _handle_date("due_date")
        if not ok_due:
            _flash_invalid("Data de vencimento inválida.")
            return redirect(target)
        fee = _parse_amount("monthly_fee")
        fields = dict(
            name=request.form.get("name", ""),
            phone=_text("phone"),
            email=_text("email"),
            position=_text("position"),
            status=request.form.get("status", models.PlayerStatus.ACTIVE.value),
            payment_status=request.form.get("payment_status", models.PaymentStatus.PENDING.value),
            monthly_fee=fee,
            due_date=due_date,
            notes=_text("notes"),
        )
        store = players_store()
        try:
            if player_id is None:
                store.create(models.PlayerForm(**fields))
            else:
                store.update(player_id, models.PlayerUpdate(**fields))
        except models.ValidationError as exc:
            _flash_invalid(str(exc))
            return redirect(target)
        return redirect(url_for("players_page"))

    @app.post("/jogadores/<player_id>/status")
    def set_player_payment_status(player_id: str):
        try:
            players_store().set_payment_status(player_id, request.form.get("payment_status", ""))
        except models.ValidationError as exc:
            _flash_invalid(str(exc))
        return redirect(url_for("players_page"))

    @app.post("/jogadores/<player_id>/excluir")
    def delete_player(player_id: str):
        players_store().delete(player_id)
        return redirect(url_for("players_page"))

    # Finances -----------------------------------------------------------
    def _finance_filters() -> Tuple[str, str]:
        transaction_type = request.args.get("tipo", metrics.ALL)
        month = request.args.get("mes", str(date.today().month - 1))
        if month != metrics.ALL and not (month.isdigit() and 0 <= int(month) <= 11):
            month = metrics.ALL
        return transaction_type, month

    @app.get("/financeiro")
    def finances_page():
        store = transactions_store()
        transaction_type, month = _finance_filters()
        editing_transaction = None
        edit_id = request.args.get("edit")
        if edit_id:
            editing_transaction = store.get(edit_id)
        return render_template(
            "finances.html",
            title="Financeiro",
            active_page="finances",
            transactions=metrics.filter_transactions(store.items, transaction_type, month),
            totals=metrics.ledger_totals(store.items),
            type_filter=transaction_type,
            month_filter=month,
            months=MONTHS,
            players=players_store().items,
            editing_transaction=editing_transaction,
            income_categories=models.INCOME_CATEGORIES,
            expense_categories=models.EXPENSE_CATEGORIES,
            payment_methods=[item.value for item in models.PaymentMethod],
        )

    @app.post("/financeiro")
    def save_transaction():
        transaction_id = request.form.get("transaction_id") or None
        target = url_for("finances_page", edit=transaction_id) if transaction_id else url_for("finances_page")
        ok_date, record_date = _handle_date("date")
        if not ok_date or record_date is None:
            _flash_invalid("A data da transação é inválida.")
            return redirect(target)
        amount = _parse_amount("amount")
        if amount is None:
            _flash_invalid("Informe um valor válido.")
            return redirect(target)
        fields = dict(
            type=request.form.get("type", models.TransactionType.INCOME.value),
            category=request.form.get("category", ""),
            description=request.form.get("description", ""),
            amount=amount,
            date=record_date,
            payment_method=request.form.get("payment_method", models.PaymentMethod.CASH.value),
            player_id=request.form.get("player_id") or None,
        )
        store = transactions_store()
        try:
            if transaction_id is None:
                store.create(models.TransactionForm(**fields))
            else:
                store.update(transaction_id, models.TransactionUpdate(**fields))
        except models.ValidationError as exc:
            _flash_invalid(str(exc))
            return redirect(target)
        return redirect(url_for("finances_page"))

    @app.post("/financeiro/<transaction_id>/excluir")
    def delete_transaction(transaction_id: str):
        transactions_store().delete(transaction_id)
        return redirect(url_for("finances_page"))

    @app.get("/financeiro/exportar")
    def export_transactions():
        transaction_type, month = _finance_filters()
        rows = metrics.filter_transactions(transactions_store().items, transaction_type, month)
        filename = export.export_filename()
        logger.info("Exporting %d transaction(s) to %s", len(rows), filename)
        return Response(
            export.export_csv(rows),
            mimetype=export.MIMETYPE,
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    # Messages -----------------------------------------------------------
    def _render_messages(links=None, selected=None):
        players = players_store().items
        status = request.values.get("status", metrics.ALL)
        return render_template(
            "messages.html",
            title="Mensagens",
            active_page="messages",
            players=metrics.filter_players(players, "", status),
            status_filter=status,
            selected=set(selected or []),
            templates=messaging.TEMPLATES,
            history=messages_store().items,
            player_names={p.id: p.name for p in players},
            links=links or [],
        )

    @app.get("/mensagens")
    def messages_page():
        selected = []
        select_status = request.args.get("selecionar")
        if select_status:
            selected = metrics.players_by_status(players_store().items, select_status)
        return _render_messages(selected=selected)

    @app.post("/mensagens/enviar")
    def send_messages():
        selected_ids = request.form.getlist("player_ids")
        template = None
        template_id = request.form.get("template_id")
        if template_id:
            try:
                template = messaging.get_template(int(template_id))
            except ValueError:
                template = None
        opened = []
        try:
            messaging.send_batch(
                players_store().items,
                selected_ids,
                messages_store(),
                template=template,
                custom_text=request.form.get("custom_message", ""),
                opener=opened.append,
                country_code=app.config["COUNTRY_CODE"],
            )
        except models.ValidationError as exc:
            _flash_invalid(str(exc))
            return redirect(url_for("messages_page"))
        return _render_messages(links=opened)

    @app.post("/mensagens/<message_id>/excluir")
    def delete_message(message_id: str):
        messages_store().delete(message_id)
        return redirect(url_for("messages_page"))

    # Settings -----------------------------------------------------------
    @app.get("/configuracoes")
    def settings_page():
        return render_template(
            "settings.html",
            title="Configurações",
            active_page="settings",
            profile=profile_store().record,
            settings=settings_store().record,
            due_days=range(1, 29),
            languages=["pt-BR", "en-US", "es-ES"],
        )

    @app.post("/configuracoes/perfil")
    def save_profile():
        fee = _parse_amount("monthly_fee")
        form = models.ProfileUpdate(
            display_name=_text("display_name"),
            team_name=request.form.get("team_name", "").strip() or "Meu Time",
            due_day=request.form.get("due_day", "15"),
            timezone=request.form.get("timezone", "America/Sao_Paulo"),
        )
        if fee is not None:
            form.monthly_fee = fee
        try:
            profile_store().update(form)
        except models.ValidationError as exc:
            _flash_invalid(str(exc))
        return redirect(url_for("settings_page"))

    @app.post("/configuracoes/avatar")
    def upload_avatar():
        file = request.files.get("avatar")
        if file is None or not file.filename:
            _flash_invalid("Selecione uma imagem.")
            return redirect(url_for("settings_page"))
        filename = secure_filename(file.filename) or "avatar.png"
        store = profile_store()
        try:
            url = store.upload_avatar(filename, file.read(), file.mimetype or "")
        except models.ValidationError as exc:
            _flash_invalid(str(exc))
            return redirect(url_for("settings_page"))
        if url:
            store.update(models.ProfileUpdate(avatar_url=url))
        return redirect(url_for("settings_page"))

    @app.errorhandler(RequestEntityTooLarge)
    def upload_too_large(_exc: RequestEntityTooLarge):
        _flash_invalid("A imagem deve ter no máximo 2MB.")
        return redirect(url_for("settings_page"))

    @app.get("/avatars/<path:key>")
    def avatar_file(key: str):
        backend = get_context().gateway
        try:
            path = backend.storage.open(key)
        except GatewayError:
            return Response("not found", status=404)
        return send_file(path)

    @app.post("/configuracoes/notificacoes")
    def save_notifications():
        settings_store().update(
            models.SettingsUpdate(
                notifications_email="notifications_email" in request.form,
                notifications_whatsapp="notifications_whatsapp" in request.form,
                notifications_payment_reminder="notifications_payment_reminder" in request.form,
                notifications_overdue="notifications_overdue" in request.form,
            )
        )
        return redirect(url_for("settings_page"))

    @app.post("/configuracoes/aparencia")
    def save_appearance():
        context = get_context()
        theme = request.form.get("theme", context.theme.theme)
        language = request.form.get("language", context.language.language)
        try:
            context.theme.set_theme(theme)
            context.language.set_language(language)
        except ValueError as exc:
            _flash_invalid(str(exc))
            return redirect(url_for("settings_page"))
        settings_store().update(
            models.SettingsUpdate(theme=theme, language=language, compact_mode="compact_mode" in request.form)
        )
        return redirect(url_for("settings_page"))

    @app.post("/configuracoes/email")
    def change_email():
        try:
            AccountActions(get_context()).change_email(request.form.get("new_email", ""))
        except models.ValidationError as exc:
            _flash_invalid(str(exc))
        return redirect(url_for("settings_page"))

    @app.post("/configuracoes/senha")
    def change_password():
        try:
            AccountActions(get_context()).change_password(
                request.form.get("new_password", ""),
                request.form.get("confirm_password", ""),
            )
        except models.ValidationError as exc:
            _flash_invalid(str(exc))
        return redirect(url_for("settings_page"))

    @app.post("/configuracoes/redefinir-senha")
    def reset_password():
        AccountActions(get_context()).reset_password(redirect_to=request.host_url)
        return redirect(url_for("settings_page"))

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Iniciar interface web da gestão do time")
    parser.add_argument("--host", default="0.0.0.0", help="Host a utilizar")
    parser.add_argument("--port", type=int, default=5000, help="Porta do servidor")
    parser.add_argument("--debug", action="store_true", help="Ativar modo debug")
    args = parser.parse_args()
    app = create_app()
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
