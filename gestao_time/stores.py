"""Account-scoped cached stores, one per collection.

Each store fetches its collection when the signed-in account changes and
keeps the result in ``items``. Mutations go to the gateway first; the cache
is patched only after the gateway acknowledges, so a failed call leaves it
untouched and there is nothing to roll back. Overlapping calls are not
sequenced: whichever response resolves last wins the cache.
"""
from __future__ import annotations

import enum
import logging
from pathlib import PurePosixPath
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from . import models, storage
from .context import AppContext
from .formatting import format_number
from .gateway import GatewayError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_AVATAR_BYTES = 2 * 1024 * 1024


class LoadState(enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


class _BaseStore(Generic[T]):
    table: str
    model: Type[T]

    def __init__(self, context: AppContext) -> None:
        self.context = context
        self.state = LoadState.UNLOADED
        self._unsubscribe = context.session.subscribe(self._on_account_change)

    @property
    def loading(self) -> bool:
        return self.state is not LoadState.READY

    @property
    def gateway(self):
        return self.context.gateway

    @property
    def user_id(self) -> Optional[str]:
        return self.context.session.user_id

    def _on_account_change(self, user: Optional[models.User]) -> None:
        if user is None:
            self._reset()
            self.state = LoadState.UNLOADED
            return
        self.fetch()

    def _reset(self) -> None:
        raise NotImplementedError

    def _begin_fetch(self) -> bool:
        if self.user_id is None:
            return False
        if self.state is LoadState.UNLOADED:
            self.state = LoadState.LOADING
        return True

    def _fail(self, title: str, exc: GatewayError) -> None:
        self.context.notify.error(title, exc.message)

    def close(self) -> None:
        self._unsubscribe()

    def fetch(self) -> Any:
        raise NotImplementedError

    def refetch(self) -> Any:
        return self.fetch()


class CollectionStore(_BaseStore[T]):
    """Cached list of rows with create/update/delete."""

    order: str = "id"
    descending: bool = False
    prepend_on_create: bool = False

    load_error = "Erro ao carregar registros"
    create_error = "Erro ao adicionar registro"
    update_error = "Erro ao atualizar registro"
    delete_error = "Erro ao remover registro"

    def __init__(self, context: AppContext) -> None:
        self.items: List[T] = []
        super().__init__(context)
        if self.user_id is not None:
            self.fetch()

    def _reset(self) -> None:
        self.items = []

    def fetch(self) -> Optional[List[T]]:
        if not self._begin_fetch():
            return None
        try:
            rows = self.gateway.select(self.table, order=self.order, descending=self.descending)
        except GatewayError as exc:
            self._fail(self.load_error, exc)
            self.state = LoadState.READY
            return None
        self.items = [storage.instantiate(self.model, row) for row in rows]
        self.state = LoadState.READY
        logger.debug("Loaded %d rows from %s", len(self.items), self.table)
        return list(self.items)

    def get(self, record_id: str) -> Optional[T]:
        return next((item for item in self.items if item.id == record_id), None)  # type: ignore[attr-defined]

    def _insert(self, row: Dict[str, Any]) -> Optional[T]:
        if self.user_id is None:
            return None
        try:
            stored = self.gateway.insert(self.table, row)
        except GatewayError as exc:
            self._fail(self.create_error, exc)
            return None
        record = storage.instantiate(self.model, stored)
        if self.prepend_on_create:
            self.items = [record, *self.items]
        else:
            self.items = [*self.items, record]
        self._created(record)
        return record

    def _update(self, record_id: str, changes: Dict[str, Any]) -> Optional[T]:
        if self.user_id is None:
            return None
        try:
            stored = self.gateway.update(self.table, changes, match={"id": record_id})
        except GatewayError as exc:
            self._fail(self.update_error, exc)
            return None
        record = storage.instantiate(self.model, stored)
        self.items = [record if item.id == record_id else item for item in self.items]  # type: ignore[attr-defined]
        self._updated(record)
        return record

    def delete(self, record_id: str) -> bool:
        if self.user_id is None:
            return False
        try:
            self.gateway.delete(self.table, match={"id": record_id})
        except GatewayError as exc:
            self._fail(self.delete_error, exc)
            return False
        self.items = [item for item in self.items if item.id != record_id]  # type: ignore[attr-defined]
        self._deleted()
        return True

    def _created(self, record: T) -> None:
        pass

    def _updated(self, record: T) -> None:
        pass

    def _deleted(self) -> None:
        pass


class PlayerStore(CollectionStore[models.Player]):
    table = "players"
    model = models.Player
    order = "name"

    load_error = "Erro ao carregar jogadores"
    create_error = "Erro ao adicionar jogador"
    update_error = "Erro ao atualizar jogador"
    delete_error = "Erro ao remover jogador"

    def create(self, form: models.PlayerForm) -> Optional[models.Player]:
        form.validate()
        return self._insert(form.to_row())

    def update(self, player_id: str, form: models.PlayerUpdate) -> Optional[models.Player]:
        form.validate()
        return self._update(player_id, form.changes())

    def set_payment_status(self, player_id: str, payment_status: str) -> Optional[models.Player]:
        return self.update(player_id, models.PlayerUpdate(payment_status=payment_status))

    def _created(self, record: models.Player) -> None:
        self.context.notify.success("Jogador adicionado com sucesso!", f"{record.name} foi adicionado ao time.")

    def _updated(self, record: models.Player) -> None:
        self.context.notify.success("Jogador atualizado com sucesso!", f"{record.name} foi atualizado.")

    def _deleted(self) -> None:
        self.context.notify.success("Jogador removido com sucesso!", "O jogador foi removido do time.")


class TransactionStore(CollectionStore[models.Transaction]):
    table = "transactions"
    model = models.Transaction
    order = "date"
    descending = True
    prepend_on_create = True

    load_error = "Erro ao carregar transações"
    create_error = "Erro ao adicionar transação"
    update_error = "Erro ao atualizar transação"
    delete_error = "Erro ao remover transação"

    def create(self, form: models.TransactionForm) -> Optional[models.Transaction]:
        form.validate()
        return self._insert(form.to_row())

    def update(self, transaction_id: str, form: models.TransactionUpdate) -> Optional[models.Transaction]:
        form.validate()
        return self._update(transaction_id, form.changes())

    def _created(self, record: models.Transaction) -> None:
        label = "Receita" if record.type == models.TransactionType.INCOME else "Despesa"
        self.context.notify.success(
            "Transação adicionada com sucesso!",
            f"{label} de R$ {format_number(record.amount)} registrada.",
        )

    def _updated(self, record: models.Transaction) -> None:
        self.context.notify.success("Transação atualizada com sucesso!")

    def _deleted(self) -> None:
        self.context.notify.success("Transação removida com sucesso!")


class MessageStore(CollectionStore[models.Message]):
    """Write-once history of outbound batches."""

    table = "messages"
    model = models.Message
    order = "sent_at"
    descending = True
    prepend_on_create = True

    load_error = "Erro ao carregar mensagens"
    create_error = "Erro ao salvar mensagem"
    delete_error = "Erro ao deletar mensagem"

    def create(self, draft: models.MessageDraft) -> Optional[models.Message]:
        return self._insert(draft.to_row())

    def _created(self, record: models.Message) -> None:
        self.context.notify.success("Mensagem salva no histórico!", f'Mensagem "{record.template_name}" registrada.')

    def _deleted(self) -> None:
        self.context.notify.success("Mensagem removida do histórico!")


class SingletonStore(_BaseStore[T]):
    """One row per account (profile, settings)."""

    update_error = "Erro ao atualizar"
    update_success = "Atualizado com sucesso!"

    def __init__(self, context: AppContext) -> None:
        self.record: Optional[T] = None
        super().__init__(context)
        if self.user_id is not None:
            self.fetch()

    def _reset(self) -> None:
        self.record = None

    def fetch(self) -> Optional[T]:
        if not self._begin_fetch():
            return None
        try:
            rows = self.gateway.select(self.table, match={"user_id": self.user_id})
            if len(rows) != 1:
                raise GatewayError(storage.SINGLE_ROW_ERROR)
        except GatewayError as exc:
            # Not surfaced to the user; the page falls back to defaults.
            logger.error("Erro ao carregar %s: %s", self.table, exc.message)
        else:
            self.record = storage.instantiate(self.model, rows[0])
        self.state = LoadState.READY
        return self.record

    def _apply(self, changes: Dict[str, Any]) -> Optional[T]:
        if self.user_id is None:
            return None
        try:
            stored = self.gateway.update(self.table, changes, match={"user_id": self.user_id})
        except GatewayError as exc:
            self._fail(self.update_error, exc)
            return None
        self.record = storage.instantiate(self.model, stored)
        self.context.notify.success(self.update_success)
        return self.record


class ProfileStore(SingletonStore[models.Profile]):
    table = "profiles"
    model = models.Profile
    update_error = "Erro ao atualizar perfil"
    update_success = "Perfil atualizado com sucesso!"

    def update(self, form: models.ProfileUpdate) -> Optional[models.Profile]:
        form.validate()
        return self._apply(form.changes())

    def upload_avatar(self, filename: str, content: bytes, content_type: str) -> Optional[str]:
        """Store the account avatar and return its public URL.

        Size and type are checked before anything is sent to the gateway.
        """
        if len(content) > MAX_AVATAR_BYTES:
            raise models.ValidationError("A imagem deve ter no máximo 2MB.")
        if not (content_type or "").startswith("image/"):
            raise models.ValidationError("Apenas arquivos de imagem são permitidos.")
        if self.user_id is None:
            return None
        extension = PurePosixPath(filename).suffix.lstrip(".") or "png"
        key = f"{self.user_id}/avatar.{extension}"
        bucket = self.gateway.storage
        try:
            bucket.remove([key])
            bucket.upload(key, content, content_type=content_type, upsert=True)
        except GatewayError:
            logger.exception("Error uploading avatar")
            self.context.notify.error("Erro no upload", "Não foi possível fazer o upload da imagem.")
            return None
        self.context.notify.success("Sucesso!", "Foto atualizada com sucesso.")
        return bucket.get_public_url(key)


class SettingsStore(SingletonStore[models.Settings]):
    table = "settings"
    model = models.Settings
    update_error = "Erro ao atualizar configurações"
    update_success = "Configurações atualizadas com sucesso!"

    def update(self, form: models.SettingsUpdate) -> Optional[models.Settings]:
        form.validate()
        return self._apply(form.changes())
