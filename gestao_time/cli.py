"""Command line interface for the team management application."""
from __future__ import annotations

import argparse
import os
import shlex
import sys
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Optional

from . import __version__, export, messaging, metrics, models
from .account import AccountActions
from .context import AppContext, Notification, build_context
from .formatting import format_currency, format_date, format_datetime
from .storage import JsonBackend
from .stores import MessageStore, PlayerStore, TransactionStore

DATE_HELP = "Formato ISO (AAAA-MM-DD)."


class CommandError(RuntimeError):
    """Raised when CLI validation fails."""


def parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise CommandError(f"Data inválida: {value}") from exc


def _print_notification(notification: Notification) -> None:
    prefix = "Erro: " if notification.destructive else ""
    text = notification.title
    if notification.description:
        text = f"{text} {notification.description}"
    print(f"{prefix}{text}")


class CliSession:
    """Context and stores for one CLI invocation, created after argument parsing."""

    def __init__(self) -> None:
        self.context: Optional[AppContext] = None
        self._stores: Dict[type, object] = {}

    def start(self, data_dir: str) -> AppContext:
        path = Path(data_dir)
        self.context = build_context(
            JsonBackend(path),
            preferences_path=path / "preferences.json",
            sink=_print_notification,
        )
        return self.context

    def login(self, email: Optional[str], password: Optional[str]) -> bool:
        if not email or not password:
            print("Erro: indique --email e --password (ou GESTAO_EMAIL / GESTAO_PASSWORD).")
            return False
        return AccountActions(self.context).sign_in(email, password) is not None

    def store(self, factory):
        if factory not in self._stores:
            self._stores[factory] = factory(self.context)
        return self._stores[factory]

    def players(self) -> PlayerStore:
        return self.store(PlayerStore)

    def transactions(self) -> TransactionStore:
        return self.store(TransactionStore)

    def messages(self) -> MessageStore:
        return self.store(MessageStore)


def format_player(player: models.Player) -> str:
    fee = format_currency(player.monthly_fee or 0)
    due = format_date(player.due_date) or "-"
    return (
        f"[{player.id}] {player.name} | {player.position or '-'} | {player.phone or '-'} | "
        f"{fee} | vence {due} | {player.payment_status} | {player.status}"
    )


def format_transaction(transaction: models.Transaction) -> str:
    sign = "+" if transaction.type == models.TransactionType.INCOME else "-"
    return (
        f"[{transaction.id}] {format_date(transaction.date)} | {transaction.description} | "
        f"{transaction.category} | {transaction.payment_method} | {sign} {format_currency(transaction.amount)}"
    )


def _configure_signup_command(subparsers: argparse._SubParsersAction, cli: CliSession) -> None:
    signup = subparsers.add_parser("signup", help="Criar conta")
    signup.add_argument("email", help="Email da conta")
    signup.add_argument("password", help="Senha (mínimo 6 caracteres)")
    signup.add_argument("--name", dest="display_name", help="Nome de exibição")

    def handle_signup(args: argparse.Namespace) -> None:
        AccountActions(cli.context).sign_up(args.email, args.password, display_name=args.display_name)

    signup.set_defaults(func=handle_signup, requires_login=False)


def _configure_player_commands(subparsers: argparse._SubParsersAction, cli: CliSession) -> None:
    player_parser = subparsers.add_parser("players", help="Gerir jogadores")
    player_sub = player_parser.add_subparsers(dest="players_command", required=True)

    add_player = player_sub.add_parser("add", help="Adicionar jogador")
    add_player.add_argument("name", help="Nome completo")
    add_player.add_argument("--phone", help="Telefone com DDD (sem +55)")
    add_player.add_argument("--email", dest="player_email", help="Email do jogador")
    add_player.add_argument("--position", help="Posição em campo")
    add_player.add_argument("--fee", type=float, dest="monthly_fee", help="Valor da mensalidade")
    add_player.add_argument("--due-date", dest="due_date", help=DATE_HELP)
    add_player.add_argument(
        "--payment-status",
        dest="payment_status",
        default=models.PaymentStatus.PENDING.value,
        choices=[item.value for item in models.PaymentStatus],
    )
    add_player.add_argument(
        "--status",
        default=models.PlayerStatus.ACTIVE.value,
        choices=[item.value for item in models.PlayerStatus],
    )
    add_player.add_argument("--notes", help="Observações")

    def handle_add(args: argparse.Namespace) -> None:
        player = cli.players().create(
            models.PlayerForm(
                name=args.name,
                phone=args.phone,
                email=args.player_email,
                position=args.position,
                status=args.status,
                payment_status=args.payment_status,
                monthly_fee=args.monthly_fee,
                due_date=parse_date(args.due_date),
                notes=args.notes,
            )
        )
        if player is not None:
            print(f"  {format_player(player)}")

    add_player.set_defaults(func=handle_add)

    list_player = player_sub.add_parser("list", help="Listar jogadores")
    list_player.add_argument("--search", default="", help="Filtrar por nome ou posição")
    list_player.add_argument("--payment-status", dest="payment_status", default=metrics.ALL)

    def handle_list(args: argparse.Namespace) -> None:
        players = metrics.filter_players(cli.players().items, args.search, args.payment_status)
        if not players:
            print("Sem jogadores registados.")
            return
        for player in players:
            print(f"- {format_player(player)}")

    list_player.set_defaults(func=handle_list)

    status_player = player_sub.add_parser("status", help="Alterar status de pagamento")
    status_player.add_argument("player_id")
    status_player.add_argument("payment_status", choices=[item.value for item in models.PaymentStatus])

    def handle_status(args: argparse.Namespace) -> None:
        cli.players().set_payment_status(args.player_id, args.payment_status)

    status_player.set_defaults(func=handle_status)

    remove_player = player_sub.add_parser("remove", help="Remover jogador")
    remove_player.add_argument("player_id")

    def handle_remove(args: argparse.Namespace) -> None:
        cli.players().delete(args.player_id)

    remove_player.set_defaults(func=handle_remove)


def _configure_finance_commands(subparsers: argparse._SubParsersAction, cli: CliSession) -> None:
    finance_parser = subparsers.add_parser("finance", help="Gestão financeira")
    finance_sub = finance_parser.add_subparsers(dest="finance_command", required=True)

    def add_filters(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--type", dest="transaction_type", default=metrics.ALL, help="receita, despesa ou todos")
        sub.add_argument("--month", default=metrics.ALL, help="Mês de 1 a 12, ou todos")

    def filtered(args: argparse.Namespace):
        month = args.month
        if month != metrics.ALL:
            if not (month.isdigit() and 1 <= int(month) <= 12):
                raise CommandError(f"Mês inválido: {args.month}")
            month = str(int(month) - 1)
        return metrics.filter_transactions(cli.transactions().items, args.transaction_type, month)

    list_tx = finance_sub.add_parser("list", help="Listar transações")
    add_filters(list_tx)

    def handle_list(args: argparse.Namespace) -> None:
        transactions = filtered(args)
        if not transactions:
            print("Sem transações registadas.")
            return
        for transaction in transactions:
            print(f"- {format_transaction(transaction)}")
        totals = metrics.ledger_totals(cli.transactions().items)
        print(
            f"Receitas: {format_currency(totals.revenue)} | Despesas: {format_currency(totals.expenses)} | "
            f"Saldo: {format_currency(totals.balance)}"
        )

    list_tx.set_defaults(func=handle_list)

    add_tx = finance_sub.add_parser("add", help="Registar transação")
    add_tx.add_argument("type", choices=[item.value for item in models.TransactionType])
    add_tx.add_argument("category", help="Categoria (ex.: Mensalidade, Campo)")
    add_tx.add_argument("description", help="Descrição")
    add_tx.add_argument("amount", type=float, help="Valor")
    add_tx.add_argument("--date", help=DATE_HELP)
    add_tx.add_argument(
        "--method",
        default=models.PaymentMethod.CASH.value,
        choices=[item.value for item in models.PaymentMethod],
    )
    add_tx.add_argument("--player", dest="player_id", help="Id do jogador associado")

    def handle_add(args: argparse.Namespace) -> None:
        transaction = cli.transactions().create(
            models.TransactionForm(
                type=args.type,
                category=args.category,
                description=args.description,
                amount=args.amount,
                date=parse_date(args.date) or date.today(),
                payment_method=args.method,
                player_id=args.player_id,
            )
        )
        if transaction is not None:
            print(f"  {format_transaction(transaction)}")

    add_tx.set_defaults(func=handle_add)

    remove_tx = finance_sub.add_parser("remove", help="Remover transação")
    remove_tx.add_argument("transaction_id")
    remove_tx.set_defaults(func=lambda args: cli.transactions().delete(args.transaction_id))

    export_tx = finance_sub.add_parser("export", help="Exportar transações para CSV")
    add_filters(export_tx)
    export_tx.add_argument("--output", help="Ficheiro de destino (por omissão financeiro-AAAA-MM-DD.csv)")

    def handle_export(args: argparse.Namespace) -> None:
        transactions = filtered(args)
        target = Path(args.output or export.export_filename())
        target.write_bytes(export.export_csv(transactions))
        print(f"Relatório exportado! {len(transactions)} transação(ões) em {target}")

    export_tx.set_defaults(func=handle_export)


def _configure_dashboard_command(subparsers: argparse._SubParsersAction, cli: CliSession) -> None:
    dashboard = subparsers.add_parser("dashboard", help="Resumo do time")

    def handle_dashboard(_: argparse.Namespace) -> None:
        players = cli.players().items
        transactions = cli.transactions().items
        stats = metrics.dashboard_stats(players, transactions)
        print(f"Total jogadores: {stats.total_players} ({stats.paid_players} pagos)")
        print(f"Receita mensal: {format_currency(stats.monthly_revenue)} ({stats.monthly_revenue_count} transações)")
        print(f"Despesa mensal: {format_currency(stats.monthly_expenses)}")
        print(
            f"Pagamentos pendentes: {format_currency(stats.pending_amount)} "
            f"({stats.pending_players + stats.late_players} jogadores)"
        )
        print(f"Taxa de adimplência: {stats.compliance_rate}% ({stats.paid_players} de {stats.total_players})")
        print("Atividade recente:")
        for item in metrics.recent_activity(transactions, players):
            print(f"  {item.date} | {item.name} | {item.status} | {format_currency(item.value)}")

    dashboard.set_defaults(func=handle_dashboard)


def _configure_message_commands(subparsers: argparse._SubParsersAction, cli: CliSession) -> None:
    message_parser = subparsers.add_parser("messages", help="Mensagens WhatsApp")
    message_sub = message_parser.add_subparsers(dest="messages_command", required=True)

    templates = message_sub.add_parser("templates", help="Listar modelos")

    def handle_templates(_: argparse.Namespace) -> None:
        for template in messaging.TEMPLATES:
            print(f"[{template.id}] {template.name} ({template.category})")
            print(f"    {template.message}")

    templates.set_defaults(func=handle_templates)

    send = message_sub.add_parser("send", help="Gerar links de WhatsApp para jogadores")
    send.add_argument("player_ids", nargs="*", help="Ids dos jogadores")
    send.add_argument("--template", type=int, dest="template_id", help="Id do modelo")
    send.add_argument("--text", default="", help="Mensagem personalizada")
    send.add_argument("--status", help="Selecionar todos os jogadores com este status de pagamento")

    def handle_send(args: argparse.Namespace) -> None:
        players = cli.players().items
        selected = list(args.player_ids)
        if args.status:
            selected = metrics.players_by_status(players, args.status)
        template = None
        if args.template_id is not None:
            template = messaging.get_template(args.template_id)
            if template is None:
                raise CommandError(f"Modelo {args.template_id} não existe")
        try:
            messaging.send_batch(
                players,
                selected,
                cli.messages(),
                template=template,
                custom_text=args.text,
                opener=print,
            )
        except models.ValidationError as exc:
            raise CommandError(str(exc)) from exc

    send.set_defaults(func=handle_send)

    history = message_sub.add_parser("history", help="Histórico de mensagens")

    def handle_history(_: argparse.Namespace) -> None:
        names = {p.id: p.name for p in cli.players().items}
        messages = cli.messages().items
        if not messages:
            print("Nenhuma mensagem enviada.")
            return
        for message in messages:
            recipients = ", ".join(names[pid] for pid in message.player_ids if pid in names)
            print(f"[{message.id}] {format_datetime(message.sent_at)} | {message.template_name} | {recipients} | {message.status}")

    history.set_defaults(func=handle_history)

    remove = message_sub.add_parser("remove", help="Remover mensagem do histórico")
    remove.add_argument("message_id")
    remove.set_defaults(func=lambda args: cli.messages().delete(args.message_id))


def build_parser(cli: CliSession) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gestão do time: jogadores, finanças e mensagens")
    parser.add_argument("--version", action="version", version=f"gestao-time {__version__}")
    parser.add_argument("--data-dir", default=os.environ.get("GESTAO_DATA_DIR", "data"), help="Diretório de dados")
    parser.add_argument("--email", default=os.environ.get("GESTAO_EMAIL"), help="Email da conta")
    parser.add_argument("--password", default=os.environ.get("GESTAO_PASSWORD"), help="Senha da conta")
    subparsers = parser.add_subparsers(dest="command")

    _configure_signup_command(subparsers, cli)
    _configure_player_commands(subparsers, cli)
    _configure_finance_commands(subparsers, cli)
    _configure_dashboard_command(subparsers, cli)
    _configure_message_commands(subparsers, cli)

    return parser


def dispatch_command(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if getattr(args, "command", None) is None:
        parser.print_help()
        return
    handler: Callable[[argparse.Namespace], None] = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return
    try:
        handler(args)
    except (CommandError, models.ValidationError) as exc:
        print(f"Erro: {exc}")


def run_interactive_shell(parser: argparse.ArgumentParser) -> None:
    print("Modo interativo da gestão do time.")
    print("Escreva comandos como faria na linha de comandos (ex.: 'players list').")
    print("Use 'help' para ver a ajuda geral e 'exit' ou 'quit' para terminar.\n")
    while True:
        try:
            raw = input("time> ").strip()
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("\nInterrupção recebida. A sair do modo interativo.")
            break
        if not raw:
            continue
        lowered = raw.lower()
        if lowered in {"exit", "quit"}:
            print("Até breve!")
            break
        if lowered in {"help", "?"}:
            parser.print_help()
            continue
        try:
            args = parser.parse_args(shlex.split(raw))
        except SystemExit:
            # argparse already printed the error/help
            continue
        dispatch_command(parser, args)


def main(argv: Optional[list[str]] = None) -> None:
    cli = CliSession()
    parser = build_parser(cli)

    actual_args = sys.argv[1:] if argv is None else argv
    args = parser.parse_args(actual_args)
    cli.start(args.data_dir)

    if getattr(args, "requires_login", True) and not cli.login(args.email, args.password):
        return
    if args.command is None:
        run_interactive_shell(parser)
        return
    dispatch_command(parser, args)


if __name__ == "__main__":
    main()
