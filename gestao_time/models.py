"""Domain models for the team management application."""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, List, Optional


UNSET: Any = object()


class ValidationError(ValueError):
    """Raised when form input is rejected before reaching the gateway."""


class PlayerStatus(str, enum.Enum):
    ACTIVE = "ativo"
    INACTIVE = "inativo"
    SUSPENDED = "suspenso"


class PaymentStatus(str, enum.Enum):
    PAID = "pago"
    PENDING = "pendente"
    LATE = "atrasado"


class TransactionType(str, enum.Enum):
    INCOME = "receita"
    EXPENSE = "despesa"


class PaymentMethod(str, enum.Enum):
    CASH = "dinheiro"
    PIX = "pix"
    CARD = "cartao"
    TRANSFER = "transferencia"


class MessageStatus(str, enum.Enum):
    SENT = "enviado"
    ERROR = "erro"
    PENDING = "pendente"


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"


INCOME_CATEGORIES = ["Mensalidade", "Taxa de inscrição", "Patrocínio", "Eventos", "Outros"]
EXPENSE_CATEGORIES = ["Campo", "Material", "Arbitragem", "Transporte", "Alimentação", "Outros"]


def categories_for(transaction_type: str) -> List[str]:
    if transaction_type == TransactionType.INCOME:
        return list(INCOME_CATEGORIES)
    return list(EXPENSE_CATEGORIES)


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class Record:
    """Mixin giving dataclass records a JSON friendly ``to_dict``."""

    def to_dict(self) -> Dict[str, Any]:
        return {key: _plain(value) for key, value in asdict(self).items()}  # type: ignore[call-overload]


@dataclass
class Player(Record):
    id: str
    name: str
    user_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    position: Optional[str] = None
    status: str = PlayerStatus.ACTIVE.value
    payment_status: str = PaymentStatus.PENDING.value
    monthly_fee: Optional[float] = None
    last_payment_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Transaction(Record):
    # ``date`` has no default so the field name never shadows the type on the class.
    id: str
    type: str
    category: str
    description: str
    amount: float
    date: date
    user_id: Optional[str] = None
    player_id: Optional[str] = None
    payment_method: str = PaymentMethod.CASH.value
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Message(Record):
    id: str
    template_name: str
    content: str
    player_ids: List[str] = field(default_factory=list)
    user_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    status: str = MessageStatus.SENT.value


@dataclass
class Profile(Record):
    id: str
    user_id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    team_name: str = "Meu Time"
    monthly_fee: float = 200.0
    due_day: int = 15
    timezone: str = "America/Sao_Paulo"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Settings(Record):
    id: str
    user_id: str
    notifications_email: bool = True
    notifications_whatsapp: bool = True
    notifications_payment_reminder: bool = True
    notifications_overdue: bool = False
    theme: str = Theme.DARK.value
    language: str = "pt-BR"
    compact_mode: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class User(Record):
    """Authenticated account as reported by the credential service."""

    id: str
    email: str
    display_name: Optional[str] = None


# Form records --------------------------------------------------------


class UpdateForm:
    """Edit form whose fields default to ``UNSET``; only set fields are sent."""

    def changes(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for item in fields(self):  # type: ignore[arg-type]
            value = getattr(self, item.name)
            if value is UNSET:
                continue
            result[item.name] = _plain(value)
        return result


def _require_text(value: Optional[str], message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(message)
    return text


def _require_amount(value: Any, message: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(message) from None
    if amount <= 0:
        raise ValidationError(message)
    return amount


def _check_choice(value: str, choices: type, message: str) -> None:
    if _plain(value) not in {item.value for item in choices}:  # type: ignore[attr-defined]
        raise ValidationError(message)


@dataclass
class PlayerForm:
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    position: Optional[str] = None
    status: str = PlayerStatus.ACTIVE.value
    payment_status: str = PaymentStatus.PENDING.value
    monthly_fee: Optional[float] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None

    def validate(self) -> None:
        self.name = _require_text(self.name, "O nome do jogador é obrigatório.")
        _check_choice(self.status, PlayerStatus, "Status do jogador inválido.")
        _check_choice(self.payment_status, PaymentStatus, "Status de pagamento inválido.")
        if self.monthly_fee is not None and float(self.monthly_fee) < 0:
            raise ValidationError("A mensalidade não pode ser negativa.")

    def to_row(self) -> Dict[str, Any]:
        return {key: _plain(value) for key, value in asdict(self).items()}


@dataclass
class PlayerUpdate(UpdateForm):
    name: Any = UNSET
    phone: Any = UNSET
    email: Any = UNSET
    position: Any = UNSET
    status: Any = UNSET
    payment_status: Any = UNSET
    monthly_fee: Any = UNSET
    last_payment_date: Any = UNSET
    due_date: Any = UNSET
    notes: Any = UNSET

    def validate(self) -> None:
        if self.name is not UNSET:
            self.name = _require_text(self.name, "O nome do jogador é obrigatório.")
        if self.status is not UNSET:
            _check_choice(self.status, PlayerStatus, "Status do jogador inválido.")
        if self.payment_status is not UNSET:
            _check_choice(self.payment_status, PaymentStatus, "Status de pagamento inválido.")


@dataclass
class TransactionForm:
    type: str
    category: str
    description: str
    amount: float
    date: date
    payment_method: str = PaymentMethod.CASH.value
    player_id: Optional[str] = None

    def validate(self) -> None:
        _check_choice(self.type, TransactionType, "Tipo de transação inválido.")
        _check_choice(self.payment_method, PaymentMethod, "Método de pagamento inválido.")
        self.category = _require_text(self.category, "Selecione uma categoria.")
        self.description = _require_text(self.description, "A descrição é obrigatória.")
        self.amount = _require_amount(self.amount, "Informe um valor válido.")
        if self.date is None:
            raise ValidationError("A data é obrigatória.")

    def to_row(self) -> Dict[str, Any]:
        return {key: _plain(value) for key, value in asdict(self).items()}


@dataclass
class TransactionUpdate(UpdateForm):
    type: Any = UNSET
    category: Any = UNSET
    description: Any = UNSET
    amount: Any = UNSET
    date: Any = UNSET
    payment_method: Any = UNSET
    player_id: Any = UNSET

    def validate(self) -> None:
        if self.type is not UNSET:
            _check_choice(self.type, TransactionType, "Tipo de transação inválido.")
        if self.payment_method is not UNSET:
            _check_choice(self.payment_method, PaymentMethod, "Método de pagamento inválido.")
        if self.description is not UNSET:
            self.description = _require_text(self.description, "A descrição é obrigatória.")
        if self.amount is not UNSET:
            self.amount = _require_amount(self.amount, "Informe um valor válido.")


@dataclass
class MessageDraft:
    template_name: str
    content: str
    player_ids: List[str] = field(default_factory=list)
    status: str = MessageStatus.SENT.value

    def to_row(self) -> Dict[str, Any]:
        return {
            "template_name": self.template_name,
            "content": self.content,
            "player_ids": list(self.player_ids),
            "status": _plain(self.status),
        }


@dataclass
class ProfileUpdate(UpdateForm):
    display_name: Any = UNSET
    avatar_url: Any = UNSET
    team_name: Any = UNSET
    monthly_fee: Any = UNSET
    due_day: Any = UNSET
    timezone: Any = UNSET

    def validate(self) -> None:
        if self.due_day is not UNSET:
            try:
                day = int(self.due_day)
            except (TypeError, ValueError):
                raise ValidationError("Dia de vencimento inválido.") from None
            if not 1 <= day <= 28:
                raise ValidationError("O dia de vencimento deve estar entre 1 e 28.")
            self.due_day = day
        if self.monthly_fee is not UNSET and self.monthly_fee is not None:
            if float(self.monthly_fee) < 0:
                raise ValidationError("A mensalidade não pode ser negativa.")


@dataclass
class SettingsUpdate(UpdateForm):
    notifications_email: Any = UNSET
    notifications_whatsapp: Any = UNSET
    notifications_payment_reminder: Any = UNSET
    notifications_overdue: Any = UNSET
    theme: Any = UNSET
    language: Any = UNSET
    compact_mode: Any = UNSET

    def validate(self) -> None:
        if self.theme is not UNSET:
            _check_choice(self.theme, Theme, "Tema inválido.")
