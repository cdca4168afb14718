"""Sign-in, sign-up and credential changes, with their form validation."""
from __future__ import annotations

from typing import Optional

from .context import AppContext
from .gateway import GatewayError
from .i18n import translate_auth_error
from .models import User, ValidationError

MIN_PASSWORD_LENGTH = 6


class AccountActions:
    def __init__(self, context: AppContext) -> None:
        self.context = context

    @property
    def auth(self):
        return self.context.gateway.auth

    def sign_in(self, email: str, password: str) -> Optional[User]:
        try:
            user = self.auth.sign_in_with_password(email, password)
        except GatewayError as exc:
            self.context.notify.error("Erro no login", translate_auth_error("sign_in", exc.message))
            return None
        self.context.notify.success("Login realizado com sucesso!", "Redirecionando para o dashboard...")
        return user

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Optional[User]:
        try:
            user = self.auth.sign_up(email, password, display_name=display_name)
        except GatewayError as exc:
            self.context.notify.error("Erro no cadastro", translate_auth_error("sign_up", exc.message))
            return None
        self.context.notify.success("Cadastro realizado com sucesso!", "Verifique seu email para confirmar a conta.")
        return user

    def sign_out(self) -> None:
        self.auth.sign_out()

    def reset_password(self, redirect_to: Optional[str] = None) -> bool:
        user = self.context.session.user
        if user is None or not user.email:
            return False
        try:
            self.auth.reset_password_for_email(user.email, redirect_to=redirect_to)
        except GatewayError as exc:
            self.context.notify.error("Erro", exc.message)
            return False
        self.context.notify.success(
            "Email enviado!",
            "Instruções para redefinir a senha foram enviadas para seu email.",
        )
        return True

    def change_email(self, new_email: str) -> bool:
        current = self.context.session.user.email if self.context.session.user else ""
        new_email = (new_email or "").strip()
        if not new_email or new_email == current:
            raise ValidationError("Digite um novo email válido")
        try:
            self.auth.update_user(email=new_email)
        except GatewayError as exc:
            self.context.notify.error("Erro ao alterar email", exc.message)
            return False
        self.context.notify.success("Email alterado!", "Verifique seu novo email para confirmar a alteração.")
        return True

    def change_password(self, new_password: str, confirm_password: str) -> bool:
        if not new_password or not confirm_password:
            raise ValidationError("Preencha todos os campos de senha")
        if new_password != confirm_password:
            raise ValidationError("As senhas não coincidem")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")
        try:
            self.auth.update_user(password=new_password)
        except GatewayError as exc:
            self.context.notify.error("Erro ao alterar senha", exc.message)
            return False
        self.context.notify.success("Senha alterada!", "Sua senha foi atualizada com sucesso.")
        return True
