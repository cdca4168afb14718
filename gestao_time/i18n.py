"""Interface strings and the handful of backend messages we translate."""
from __future__ import annotations

from typing import Dict

LANGUAGES = ("pt-BR", "en-US", "es-ES")
DEFAULT_LANGUAGE = "pt-BR"

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "pt-BR": {
        "nav.dashboard": "Dashboard",
        "nav.players": "Jogadores",
        "nav.messages": "Mensagens",
        "nav.financial": "Financeiro",
        "nav.settings": "Configurações",
        "dashboard.title": "Dashboard",
        "dashboard.subtitle": "Visão geral do seu time",
        "dashboard.totalPlayers": "Total de Jogadores",
        "dashboard.monthlyRevenue": "Receita Mensal",
        "dashboard.pendingPayments": "Pagamentos Pendentes",
        "dashboard.compliance": "Taxa de Adimplência",
        "players.title": "Jogadores",
        "players.subtitle": "Gerencie os jogadores do seu time",
        "players.addPlayer": "Adicionar Jogador",
        "messages.title": "Mensagens WhatsApp",
        "messages.subtitle": "Envie mensagens para os jogadores",
        "financial.title": "Financeiro",
        "financial.subtitle": "Controle financeiro do time",
        "settings.title": "Configurações",
        "settings.subtitle": "Gerencie as configurações do sistema",
        "general.save": "Salvar",
        "general.cancel": "Cancelar",
        "general.edit": "Editar",
        "general.delete": "Excluir",
        "general.add": "Adicionar",
        "general.logout": "Sair",
    },
    "en-US": {
        "nav.dashboard": "Dashboard",
        "nav.players": "Players",
        "nav.messages": "Messages",
        "nav.financial": "Financial",
        "nav.settings": "Settings",
        "dashboard.title": "Dashboard",
        "dashboard.subtitle": "Overview of your team",
        "dashboard.totalPlayers": "Total Players",
        "dashboard.monthlyRevenue": "Monthly Revenue",
        "dashboard.pendingPayments": "Pending Payments",
        "dashboard.compliance": "Payment Compliance",
        "players.title": "Players",
        "players.subtitle": "Manage your team players",
        "players.addPlayer": "Add Player",
        "messages.title": "WhatsApp Messages",
        "messages.subtitle": "Send messages to players",
        "financial.title": "Financial",
        "financial.subtitle": "Team financial control",
        "settings.title": "Settings",
        "settings.subtitle": "Manage system settings",
        "general.save": "Save",
        "general.cancel": "Cancel",
        "general.edit": "Edit",
        "general.delete": "Delete",
        "general.add": "Add",
        "general.logout": "Sign out",
    },
    "es-ES": {
        "nav.dashboard": "Panel",
        "nav.players": "Jugadores",
        "nav.messages": "Mensajes",
        "nav.financial": "Financiero",
        "nav.settings": "Configuración",
        "dashboard.title": "Panel",
        "dashboard.subtitle": "Resumen de tu equipo",
        "dashboard.totalPlayers": "Total de Jugadores",
        "dashboard.monthlyRevenue": "Ingresos Mensuales",
        "dashboard.pendingPayments": "Pagos Pendientes",
        "dashboard.compliance": "Tasa de Cumplimiento",
        "players.title": "Jugadores",
        "players.subtitle": "Gestiona los jugadores de tu equipo",
        "players.addPlayer": "Agregar Jugador",
        "messages.title": "Mensajes WhatsApp",
        "messages.subtitle": "Envía mensajes a los jugadores",
        "financial.title": "Financiero",
        "financial.subtitle": "Control financiero del equipo",
        "settings.title": "Configuración",
        "settings.subtitle": "Gestiona la configuración del sistema",
        "general.save": "Guardar",
        "general.cancel": "Cancelar",
        "general.edit": "Editar",
        "general.delete": "Eliminar",
        "general.add": "Agregar",
        "general.logout": "Salir",
    },
}

_AUTH_MESSAGES = {
    "sign_in": ("Invalid login credentials", "Email ou senha incorretos"),
    "sign_up": ("User already registered", "Este email já está cadastrado"),
}


def translate(language: str, key: str) -> str:
    """Look up ``key``; unknown keys are returned as-is."""
    table = TRANSLATIONS.get(language) or TRANSLATIONS[DEFAULT_LANGUAGE]
    return table.get(key, key)


def translate_auth_error(action: str, message: str) -> str:
    known = _AUTH_MESSAGES.get(action)
    if known is not None and message == known[0]:
        return known[1]
    return message
