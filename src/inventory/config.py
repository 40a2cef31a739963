"""
Configuration de l'application.

Toutes les valeurs viennent de variables d'environnement,
avec des valeurs par défaut adaptées au développement local.
"""

from __future__ import annotations

import logging
import os


def get_database_uri() -> str:
    return os.environ.get("INVENTORY_DATABASE_URI", "sqlite:///inventory.db")


def get_smtp_host() -> str:
    return os.environ.get("INVENTORY_SMTP_HOST", "localhost")


def get_smtp_port() -> int:
    return int(os.environ.get("INVENTORY_SMTP_PORT", "587"))


def get_alert_recipient() -> str:
    """Destinataire des alertes de stock bas (l'équipe achats)."""
    return os.environ.get("INVENTORY_ALERT_RECIPIENT", "achats@example.com")


def get_alert_sender() -> str:
    return os.environ.get("INVENTORY_ALERT_SENDER", "inventaire@example.com")


def configure_logging() -> None:
    logging.basicConfig(
        level=os.environ.get("INVENTORY_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
