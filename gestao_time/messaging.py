"""WhatsApp outreach: template rendering, deep links and batch sending."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Sequence
from urllib.parse import quote

from .formatting import format_date, format_number
from .models import Message, MessageDraft, Player, ValidationError

logger = logging.getLogger(__name__)

NAME_TOKEN = "{NOME}"
AMOUNT_TOKEN = "{VALOR}"
DUE_DATE_TOKEN = "{DATA_VENCIMENTO}"
DEFAULT_AMOUNT = "200"
CUSTOM_MESSAGE_NAME = "Mensagem Personalizada"
WHATSAPP_URL = "https://wa.me"
COUNTRY_CODE = "55"

# Characters encodeURIComponent leaves alone.
_URI_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class MessageTemplate:
    id: int
    name: str
    message: str
    category: str


TEMPLATES = (
    MessageTemplate(
        1,
        "Cobrança Pendente",
        "Olá {NOME}! Sua mensalidade de R$ {VALOR} com vencimento em {DATA_VENCIMENTO} está pendente. "
        "Por favor, realize o pagamento para manter sua participação no time ativo. "
        "Qualquer dúvida, entre em contato!",
        "cobranca",
    ),
    MessageTemplate(
        2,
        "Pagamento Cartão",
        "Oi {NOME}, sua penalidade é de R$ {VALOR} venceu em {DATA_VENCIMENTO} e ainda não foi quitada. "
        "Para evitar o cancelamento da sua vaga, regularize sua situação o quanto antes. Obrigado!",
        "cobranca",
    ),
    MessageTemplate(
        3,
        "Confirmação de Treino",
        "Fala {NOME}! Lembrando que temos treino hoje às 19h no campo. "
        "Não esqueça de trazer água e chegar 15 minutos antes. Até mais!",
        "treino",
    ),
    MessageTemplate(
        4,
        "Convocação para Jogo",
        "E aí {NOME}! Você está convocado para o jogo de domingo às 9h. Local: Campo Municipal. "
        "Chegada às 8h30. Vamos que vamos! ⚽",
        "jogo",
    ),
)


def get_template(template_id: int) -> Optional[MessageTemplate]:
    return next((template for template in TEMPLATES if template.id == template_id), None)


def render(template: str, player: Player, today: Optional[date] = None) -> str:
    """Replace every ``{NOME}``, ``{VALOR}`` and ``{DATA_VENCIMENTO}`` in ``template``.

    Any other text, including unknown ``{TOKENS}``, is left as-is. Tokens are
    replaced in that order, so a player name containing ``{VALOR}`` or
    ``{DATA_VENCIMENTO}`` is substituted as well.
    """
    due = player.due_date or today or date.today()
    amount = format_number(player.monthly_fee) if player.monthly_fee is not None else DEFAULT_AMOUNT
    return (
        template.replace(NAME_TOKEN, player.name)
        .replace(AMOUNT_TOKEN, amount)
        .replace(DUE_DATE_TOKEN, format_date(due))
    )


def whatsapp_link(phone: Optional[str], text: str, country_code: str = COUNTRY_CODE) -> str:
    return f"{WHATSAPP_URL}/{country_code}{phone or ''}?text={quote(text, safe=_URI_SAFE)}"


@dataclass
class BatchResult:
    links: List[str]
    history: Optional[Message]


LinkOpener = Callable[[str], None]


def send_batch(
    players: Sequence[Player],
    selected_ids: Sequence[str],
    message_store,
    *,
    template: Optional[MessageTemplate] = None,
    custom_text: str = "",
    opener: Optional[LinkOpener] = None,
    today: Optional[date] = None,
    country_code: str = COUNTRY_CODE,
) -> BatchResult:
    """Open one WhatsApp link per selected player and record the batch once.

    The history row keeps the unrendered source text and is always written
    with status ``enviado``; opening a link gives no delivery feedback.
    """
    message = template.message if template is not None else custom_text
    if not message.strip():
        raise ValidationError("Digite uma mensagem antes de enviar.")
    if not selected_ids:
        raise ValidationError("Selecione pelo menos um jogador.")

    wanted = set(selected_ids)
    links = []
    for player in players:
        if player.id not in wanted:
            continue
        link = whatsapp_link(player.phone, render(message, player, today), country_code)
        if opener is not None:
            opener(link)
        links.append(link)
    logger.info("Opened %d WhatsApp link(s)", len(links))

    history = message_store.create(
        MessageDraft(
            template_name=template.name if template is not None else CUSTOM_MESSAGE_NAME,
            content=message,
            player_ids=list(selected_ids),
        )
    )
    message_store.context.notify.success(
        "Mensagens enviadas!",
        f"{len(selected_ids)} mensagem(ns) aberta(s) no WhatsApp.",
    )
    return BatchResult(links=links, history=history)
